from qppval.dataloader.config_loader import ConfigLoader
from qppval.dataloader.measure_store import MeasureConfigStore

__all__ = ["ConfigLoader", "MeasureConfigStore"]
