"""
QR Menu backend: restaurant menus, QR table links and device-scoped ordering
"""

__version__ = "1.0.0"
