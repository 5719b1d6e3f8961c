from fundbridge.models.project import Project
from fundbridge.models.goal import Goal
from fundbridge.models.purpose import Purpose
from fundbridge.models.contribution import Contribution
from fundbridge.models.bridge_run import BridgeRun
from fundbridge.models.distribution_run import DistributionRun

__all__ = [
    "Project",
    "Goal",
    "Purpose",
    "Contribution",
    "BridgeRun",
    "DistributionRun",
]
