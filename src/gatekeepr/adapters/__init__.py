from .source_data import SimulatedSourceDataClient, SourceDataClient
from .transit import TransitAccessClient

__all__ = ["SimulatedSourceDataClient", "SourceDataClient", "TransitAccessClient"]
