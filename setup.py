from setuptools import setup, find_packages

setup(
    name="billboard-logo-sync",
    version="0.1.0",
    description="Logo manifest and IoT sensor sync for digital billboard players",
    packages=find_packages(include=["src", "src.*"]),
    python_requires=">=3.8",
    install_requires=[
        "PyYAML>=6.0",
        "pyzmq>=25.0",
        "requests>=2.31.0",
        "paho-mqtt>=1.6",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "pylint>=2.17.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "billboard-sync=src.billboard.app:main",
        ]
    },
)
