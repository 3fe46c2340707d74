"""Processing sub-package — schema validation, normalization, filtering, quality."""

from biofeedback_engine.processing.filters import NoiseFilter
from biofeedback_engine.processing.normalizer import SampleNormalizer
from biofeedback_engine.processing.processor import DataProcessor
from biofeedback_engine.processing.quality import QualityEstimator
from biofeedback_engine.processing.schemas import SchemaRegistry, default_schemas

__all__ = [
    "DataProcessor",
    "NoiseFilter",
    "QualityEstimator",
    "SampleNormalizer",
    "SchemaRegistry",
    "default_schemas",
]
