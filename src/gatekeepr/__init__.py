"""GatekeepR: attribute-based field redaction in front of a rights provider and a raw-data source."""

__version__ = "0.1.0"
