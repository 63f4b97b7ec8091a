__all__ = [
    'AsyncRepository',
    'ConfigError',
    'DynamoClient',
    'FormatError',
    'IndexKind',
    'Query',
    'QueryError',
    'QueryResult',
    'Repository',
    'SingleTableException',
    'SortDirection',
    'UnprocessedKeysError',
    'encode_key',
    'ensure_table_and_indexes_exist',
    'get_config',
    'get_repository',
    'get_sort_key_for_begins_with',
]
from .aio import AsyncRepository
from .clients import DynamoClient
from .config import get_config
from .enums import IndexKind, SortDirection
from .exceptions import ConfigError, FormatError, QueryError, SingleTableException, UnprocessedKeysError
from .keys import encode_key, get_sort_key_for_begins_with
from .provisioning import ensure_table_and_indexes_exist
from .query import Query, QueryResult
from .repository import Repository, get_repository
