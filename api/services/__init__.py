# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence, orchestration and external integrations.
"""

from .mongodb import MongoDBService, DuplicateRecordError, get_mongodb_service, close_mongodb_connection
from .assemblies import AssemblyRegistry
from .agenda import AgendaManager
from .attendance import AttendanceLedger
from .ballots import BallotBox
from .results import ResultsCalculator

__all__ = [
    "MongoDBService",
    "DuplicateRecordError",
    "get_mongodb_service",
    "close_mongodb_connection",
    "AssemblyRegistry",
    "AgendaManager",
    "AttendanceLedger",
    "BallotBox",
    "ResultsCalculator"
]
