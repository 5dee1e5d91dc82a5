"""OpenVideoGen: script -> voice -> face -> video pipeline with a local asset store."""

__version__ = "0.1.0"
