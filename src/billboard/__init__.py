"""
Billboard sync package.
Contains modules for logo manifest sync (fetch, validate, cache, notify,
poll), logo downloads, IoT sensor parsing and the display IPC bridge.
"""
