import collections.abc
import logging
import types

from .enums import IndexKind
from .exceptions import ConfigError

logger = logging.getLogger()

HASH_KEY_ATTRIBUTE = '__hashKey'
SORT_KEY_ATTRIBUTE = '__sortKey'
OBJECT_TYPE_ATTRIBUTE = '__objectType'

# the backend allows at most this many secondary indexes of each kind on one table
LSI_SLOTS = 5
GSI_SLOTS = 20

LSI_SORT_KEY_ATTRIBUTES = tuple(f'__lsi{which}' for which in range(LSI_SLOTS))
LSI_NAMES = tuple(f'lsi{which}' for which in range(LSI_SLOTS))
GSI_HASH_KEY_ATTRIBUTES = tuple(f'__gsiHash{which}' for which in range(GSI_SLOTS))
GSI_SORT_KEY_ATTRIBUTES = tuple(f'__gsiSort{which}' for which in range(GSI_SLOTS))
GSI_NAMES = tuple(f'gsi{which}' for which in range(GSI_SLOTS))

Index = collections.namedtuple(
    'Index',
    [
        'kind',
        'name',
        'tag',
        'hash_key_fields',
        'hash_key_attribute',
        'hash_key_descriptor',
        'sort_key_fields',
        'sort_key_attribute',
        'sort_key_descriptor',
        'is_custom_index',
        'which',
    ],
)


def index_query_fields(index):
    """
    The filter fields an index can consume, as (hash fields, sort fields).
    Custom indexes are queried by their raw attribute names.
    """
    if index.is_custom_index:
        return (index.hash_key_attribute,), (index.sort_key_attribute,)
    return index.hash_key_fields, index.sort_key_fields


def engine_attributes(indexes):
    "Every attribute the engine writes on its own, which is everything but the custom index attributes"
    attributes = {HASH_KEY_ATTRIBUTE, SORT_KEY_ATTRIBUTE, OBJECT_TYPE_ATTRIBUTE}
    for index in indexes:
        if not index.is_custom_index:
            attributes.update((index.hash_key_attribute, index.sort_key_attribute))
    return frozenset(attributes)


def validate_fields(query_name, fields, label):
    if isinstance(fields, str) or not isinstance(fields, (list, tuple)):
        raise ConfigError(query_name, f'{label} must be a list of field names')
    for field in fields:
        if not isinstance(field, str) or not field:
            raise ConfigError(query_name, f'{label} contains an invalid field name `{field!r}`')
    if len(set(fields)) != len(fields):
        raise ConfigError(query_name, f'{label} contains a field more than once')
    return tuple(fields)


def validate_slot(query_name, which, slots):
    if isinstance(which, bool) or not isinstance(which, int):
        raise ConfigError(query_name, f'`which` must be an integer slot in [0, {slots - 1}]')
    if not 0 <= which < slots:
        raise ConfigError(query_name, f'slot `{which}` is out of range [0, {slots - 1}]')
    return which


def get_primary_index(object_name, hash_key_fields, sort_key_fields, tag=''):
    return Index(
        kind=IndexKind.PRIMARY,
        name='',
        tag=tag,
        hash_key_fields=tuple(hash_key_fields),
        hash_key_attribute=HASH_KEY_ATTRIBUTE,
        hash_key_descriptor=object_name,
        sort_key_fields=tuple(sort_key_fields),
        sort_key_attribute=SORT_KEY_ATTRIBUTE,
        sort_key_descriptor=object_name,
        is_custom_index=False,
        which=None,
    )


def get_lsi_index(query_name, declaration, object_name, hash_key_fields):
    which = validate_slot(query_name, declaration.get('which'), LSI_SLOTS)
    return Index(
        kind=IndexKind.LOCAL,
        name=LSI_NAMES[which],
        tag=query_name,
        hash_key_fields=tuple(hash_key_fields),
        hash_key_attribute=HASH_KEY_ATTRIBUTE,
        hash_key_descriptor=object_name,
        sort_key_fields=validate_fields(query_name, declaration['sort_key_fields'], 'sort_key_fields'),
        sort_key_attribute=LSI_SORT_KEY_ATTRIBUTES[which],
        sort_key_descriptor=query_name,
        is_custom_index=False,
        which=which,
    )


def get_gsi_index(query_name, declaration, object_name):
    which = validate_slot(query_name, declaration.get('which'), GSI_SLOTS)
    hash_key_fields = validate_fields(query_name, declaration['hash_key_fields'], 'hash_key_fields')
    if not hash_key_fields:
        raise ConfigError(query_name, 'global indexes need at least one hash key field')
    return Index(
        kind=IndexKind.GLOBAL,
        name=GSI_NAMES[which],
        tag=query_name,
        hash_key_fields=hash_key_fields,
        hash_key_attribute=GSI_HASH_KEY_ATTRIBUTES[which],
        hash_key_descriptor=f'{object_name}-{query_name}',
        sort_key_fields=validate_fields(query_name, declaration['sort_key_fields'], 'sort_key_fields'),
        sort_key_attribute=GSI_SORT_KEY_ATTRIBUTES[which],
        sort_key_descriptor=query_name,
        is_custom_index=False,
        which=which,
    )


def get_custom_gsi_index(query_name, declaration, object_name):
    hash_key_attribute = declaration.get('hash_key_attribute_name')
    sort_key_attribute = declaration.get('sort_key_attribute_name')
    for attribute in (hash_key_attribute, sort_key_attribute):
        if not isinstance(attribute, str) or not attribute:
            raise ConfigError(
                query_name, 'custom indexes need both hash_key_attribute_name and sort_key_attribute_name'
            )
    if hash_key_attribute == sort_key_attribute:
        raise ConfigError(query_name, 'hash and sort attributes of a custom index must differ')
    return Index(
        kind=IndexKind.CUSTOM_GLOBAL,
        name=declaration.get('index_name') or query_name,
        tag=query_name,
        hash_key_fields=(),
        hash_key_attribute=hash_key_attribute,
        hash_key_descriptor=f'{object_name}-{query_name}',
        sort_key_fields=(),
        sort_key_attribute=sort_key_attribute,
        sort_key_descriptor=query_name,
        is_custom_index=True,
        which=None,
    )


def classify_declaration(query_name, declaration):
    "Decide once which kind of index a declaration describes"
    if not isinstance(declaration, collections.abc.Mapping):
        raise ConfigError(query_name, 'declaration must be a mapping')
    if declaration.get('is_primary'):
        return IndexKind.PRIMARY

    kind = declaration.get('kind')
    has_hash_fields = declaration.get('hash_key_fields') is not None
    has_sort_fields = declaration.get('sort_key_fields') is not None
    has_attributes = (
        declaration.get('hash_key_attribute_name') is not None
        or declaration.get('sort_key_attribute_name') is not None
    )

    if kind is None:
        if has_attributes and not (has_hash_fields or has_sort_fields):
            kind = IndexKind.CUSTOM_GLOBAL
        elif has_sort_fields and not has_hash_fields and not has_attributes:
            kind = IndexKind.LOCAL
        elif has_sort_fields and has_hash_fields and not has_attributes:
            kind = IndexKind.GLOBAL
        else:
            raise ConfigError(query_name, 'declaration does not describe a local, global or custom index')

    if kind not in IndexKind._ALL:
        raise ConfigError(query_name, f'unknown index kind `{kind}`')
    if kind == IndexKind.LOCAL and (has_hash_fields or not has_sort_fields):
        raise ConfigError(query_name, 'local indexes take sort_key_fields only')
    if kind == IndexKind.GLOBAL and not (has_hash_fields and has_sort_fields):
        raise ConfigError(query_name, 'global indexes take both hash_key_fields and sort_key_fields')
    if kind == IndexKind.CUSTOM_GLOBAL and (has_hash_fields or has_sort_fields):
        raise ConfigError(query_name, 'custom indexes take attribute names, not field lists')
    return kind


def build_indexes(object_name, hash_key_fields, sort_key_fields, declarations=None):
    """
    Normalize the primary key and the named index declarations into Index descriptors.
    Returns (primary_index, indexes, indexes_by_tag). The primary index is always first and the
    named indexes follow in declaration order, which is also the tie-break order for index selection.
    """
    primary_index = get_primary_index(object_name, hash_key_fields, sort_key_fields)
    indexes = [primary_index]

    items = declarations.items() if isinstance(declarations, collections.abc.Mapping) else (declarations or ())
    for query_name, declaration in items:
        if not isinstance(query_name, str) or not query_name:
            raise ConfigError(query_name, 'query names must be non-empty strings')
        kind = classify_declaration(query_name, declaration)
        if kind == IndexKind.PRIMARY:
            index = get_primary_index(object_name, hash_key_fields, sort_key_fields, tag=query_name)
        elif kind == IndexKind.LOCAL:
            index = get_lsi_index(query_name, declaration, object_name, hash_key_fields)
        elif kind == IndexKind.GLOBAL:
            index = get_gsi_index(query_name, declaration, object_name)
        else:
            index = get_custom_gsi_index(query_name, declaration, object_name)
        indexes.append(index)

    indexes_by_tag = {}
    index_names = {}
    for index in indexes:
        if index.tag in indexes_by_tag:
            raise ConfigError(index.tag, 'tag is used by more than one index')
        indexes_by_tag[index.tag] = index
        if index.name:
            if index.name in index_names:
                other = index_names[index.name]
                raise ConfigError(index.tag, f'physical index `{index.name}` is already used by `{other}`')
            index_names[index.name] = index.tag

    logger.debug(f'Built {len(indexes)} indexes for `{object_name}`: {[index.tag for index in indexes]}')
    return primary_index, tuple(indexes), types.MappingProxyType(indexes_by_tag)
