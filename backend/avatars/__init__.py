"""
Avatar Build Pipeline

Packages an avatar authored in a scene document into a distributable bundle.
"""
__version__ = "1.0.0"
