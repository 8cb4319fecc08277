"""DynamoDB-backed stores for config, cart sessions and transactions."""

from .config_store import ConfigStore
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .session_store import SessionStore
from .transaction_store import TransactionStore

__all__ = [
    "ConfigStore",
    "DynamoDBService",
    "SessionStore",
    "TransactionStore",
    "get_dynamodb_service",
    "reset_dynamodb_service",
]
