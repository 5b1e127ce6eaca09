"""Kiosk-tablet hub building blocks: settings, SQLite storage, MQTT and translations."""

__version__ = "0.1.0"