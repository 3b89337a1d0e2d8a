"""
Entry point for: python3 -m src.billboard

Runs the logo manifest sync and sensor feed for the billboard display.
"""

from .app import main

if __name__ == "__main__":
    main()
