# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - storage adapters and the request lifecycle services.
"""

from .store import RequestQuery, RequestStore, UserDirectory
from .mongodb import MongoDBService, MongoRequestStore, MongoUserDirectory
from .memory import InMemoryRequestStore, InMemoryUserDirectory
from .matching import AcceptanceOutcome, MatchingEngine
from .lifecycle import LifecycleController, RequestFilters
from .dashboard import DashboardAggregator

__all__ = [
    "RequestQuery",
    "RequestStore",
    "UserDirectory",
    "MongoDBService",
    "MongoRequestStore",
    "MongoUserDirectory",
    "InMemoryRequestStore",
    "InMemoryUserDirectory",
    "AcceptanceOutcome",
    "MatchingEngine",
    "LifecycleController",
    "RequestFilters",
    "DashboardAggregator"
]
