"""
Review Pipeline

Submission lifecycle, configuration store and rebuttal dialogue for the
OpenCSPaper reviewer.
"""

from pathlib import Path
from typing import Optional

from cspcore.io import SnapshotStore
from llms.gateway import ReviewGateway

from .config import ConfigService
from .rebuttal import RebuttalDriver
from .repository import StageEvent, SubmissionRepository
from .review_pipeline import ReviewPipeline, ReviewRequest

__version__ = "0.1.0"
__all__ = [
    "ConfigService",
    "RebuttalDriver",
    "ReviewPipeline",
    "ReviewRequest",
    "ReviewerApp",
    "StageEvent",
    "SubmissionRepository",
]


class ReviewerApp:
    """Wires the store, repository, config service, gateway and drivers."""

    def __init__(
        self,
        storage_dir: Path,
        gateway: Optional[ReviewGateway] = None,
    ):
        self.store = SnapshotStore(Path(storage_dir))
        self.config = ConfigService(self.store)
        self.repository = SubmissionRepository(self.store)
        self.gateway = gateway or ReviewGateway()
        self.pipeline = ReviewPipeline(self.repository, self.config, self.gateway)
        self.rebuttal = RebuttalDriver(self.repository, self.config, self.gateway)
