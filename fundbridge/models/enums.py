#fundbridge/models/enums.py
from __future__ import annotations
from enum import Enum


class Currency(str, Enum):
    JPYC = "JPYC"
    USDC = "USDC"


class ContributionStatus(str, Enum):
    # forward only: PENDING -> CONFIRMED
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"


class ProjectStatus(str, Enum):
    DRAFT = "DRAFT"
    FUNDING = "FUNDING"
    GOAL_ACHIEVED = "GOAL_ACHIEVED"
    BRIDGED = "BRIDGED"
    DISTRIBUTED = "DISTRIBUTED"


class BridgeProvider(str, Enum):
    WORMHOLE_UI = "WORMHOLE_UI"
    MANUAL = "MANUAL"
    ICTT = "ICTT"


class DistributionMode(str, Enum):
    PLAN_ONLY = "PLAN_ONLY"
    LOG_ONLY = "LOG_ONLY"
