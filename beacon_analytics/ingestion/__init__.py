"""
Beacon Ingestion Module
"""
from .admission import AdmissionController
from .dimensions import DimensionResolver
from .identity import client_address, hash_ip
from .service import IngestionService
from .user_agent import UserAgentAttributes, parse_user_agent

__all__ = [
    "AdmissionController",
    "DimensionResolver",
    "IngestionService",
    "UserAgentAttributes",
    "client_address",
    "hash_ip",
    "parse_user_agent",
]
