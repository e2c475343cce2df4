from .base import BaseService
from .analysis_mgmt import AnalysisStoreService
from .artifact_mgmt import ArtifactService

__all__ = [
    'BaseService',
    'AnalysisStoreService',
    'ArtifactService'
]
