"""Remote data ingestion over SSH and structural shape inference for JSON data."""

__version__ = "0.1.0"
