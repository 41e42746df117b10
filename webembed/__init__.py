"""Embed built static web files into a C/C++ source for ESP32 HTTP servers."""

__version__ = "1.0.0"
