import collections
import os

from .exceptions import ConfigError
from .indexes import build_indexes, validate_fields
from .keys import DEFAULT_PADDED_NUMBER_LENGTH, DEFAULT_SEPARATOR

DYNAMO_TABLE = os.environ.get('DYNAMO_TABLE')

RepositoryConfig = collections.namedtuple(
    'RepositoryConfig',
    [
        'table_name',
        'object_name',
        'composite_key_separator',
        'should_pad_numbers_in_indexes',
        'padded_number_length',
        'primary_index',
        'indexes',
        'indexes_by_tag',
    ],
)


def get_config(
    object_name,
    hash_key_fields,
    sort_key_fields=None,
    table_name=None,
    composite_key_separator=DEFAULT_SEPARATOR,
    should_pad_numbers_in_indexes=True,
    padded_number_length=DEFAULT_PADDED_NUMBER_LENGTH,
    indexes=None,
):
    """
    Build the immutable config shared by every operation of one repository.

    `indexes` maps query names to declarations, for example:

        {
            'latestPurchases': {'sort_key_fields': ['purchaseDate'], 'which': 0},
            'purchasersOfItem': {'hash_key_fields': ['itemId'], 'sort_key_fields': ['purchaseDate'], 'which': 0},
            'byEmail': {'hash_key_attribute_name': 'email', 'sort_key_attribute_name': 'createdAt'},
            'byUser': {'is_primary': True},
        }
    """
    if not isinstance(object_name, str) or not object_name:
        raise ConfigError(None, 'object_name must be a non-empty string')
    table_name = table_name or DYNAMO_TABLE
    if not table_name:
        raise ConfigError(None, 'table_name is required, either as an argument or via DYNAMO_TABLE')
    if not isinstance(composite_key_separator, str) or not composite_key_separator:
        raise ConfigError(None, 'composite_key_separator must be a non-empty string')
    if '-' in composite_key_separator:
        # `-` joins field names to their values
        raise ConfigError(None, 'composite_key_separator may not contain `-`')
    if isinstance(padded_number_length, bool) or not isinstance(padded_number_length, int):
        raise ConfigError(None, 'padded_number_length must be an integer')
    if padded_number_length < 1:
        raise ConfigError(None, 'padded_number_length must be positive')

    hash_key_fields = validate_fields(None, hash_key_fields, 'hash_key_fields')
    if not hash_key_fields:
        raise ConfigError(None, 'at least one hash key field is required')
    sort_key_fields = validate_fields(None, sort_key_fields or (), 'sort_key_fields')
    if set(hash_key_fields) & set(sort_key_fields):
        raise ConfigError(None, 'a field cannot be part of both the hash key and the sort key')

    primary_index, all_indexes, indexes_by_tag = build_indexes(object_name, hash_key_fields, sort_key_fields, indexes)
    for index in all_indexes:
        for field in index.hash_key_fields + index.sort_key_fields:
            if composite_key_separator in field:
                raise ConfigError(index.tag, f'field `{field}` contains the key separator')
    return RepositoryConfig(
        table_name=table_name,
        object_name=object_name,
        composite_key_separator=composite_key_separator,
        should_pad_numbers_in_indexes=bool(should_pad_numbers_in_indexes),
        padded_number_length=padded_number_length,
        primary_index=primary_index,
        indexes=all_indexes,
        indexes_by_tag=indexes_by_tag,
    )


def encoding_kwargs(config):
    "The encoder settings of a config, as keyword args for `encode_key`"
    return {
        'separator': config.composite_key_separator,
        'should_pad': config.should_pad_numbers_in_indexes,
        'padded_number_length': config.padded_number_length,
    }
