"""PolyTrans: translation dispatch and receiving between content sites."""

__version__ = "1.0.0"
