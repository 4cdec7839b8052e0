"""
Noise Module
Continuous background event generation toward stored destinations.
"""
from noise.models import EnabledEventSource, NoiseConfig, NoiseStartRequest, NoiseUpdateRequest
from noise.generator import NoiseGenerator, WeightedPick, build_weighted_pool

__all__ = [
    'EnabledEventSource',
    'NoiseConfig',
    'NoiseStartRequest',
    'NoiseUpdateRequest',
    'NoiseGenerator',
    'WeightedPick',
    'build_weighted_pool',
]
