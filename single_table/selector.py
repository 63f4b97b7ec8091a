import logging

from .indexes import index_query_fields

logger = logging.getLogger()

# outweighs any sort key prefix length
HASH_KEY_MATCH_SCORE = 1000


def filter_fields(args):
    "The fields of a where() argument that actually carry a value"
    return {field for field, value in args.items() if value is not None}


def match_index(index, fields):
    """
    How many leading sort key fields of `index` the given filter fields cover, or None if the index
    cannot serve the filter: its hash key must be fully covered, and every filter field must be
    consumed by the hash key or by the matched sort key prefix.
    """
    hash_key_fields, sort_key_fields = index_query_fields(index)
    if not set(hash_key_fields) <= fields:
        return None

    remaining = fields - set(hash_key_fields)
    matched = 0
    for field in sort_key_fields:
        if field not in remaining:
            break
        matched += 1

    if remaining - set(sort_key_fields[:matched]):
        return None
    return matched


def find_index_for_query(indexes, fields):
    """
    Pick the most specific index for a set of filter fields, or None if no index can serve them.
    Indexes are scored on hash key match plus matched sort key prefix length. On a tie the earliest
    index wins, the primary index first and then the named indexes in declaration order.
    """
    fields = set(fields)
    if not fields:
        return None

    best_index, best_score = None, -1
    for index in indexes:
        matched = match_index(index, fields)
        if matched is None:
            continue
        score = HASH_KEY_MATCH_SCORE + matched
        if score > best_score:
            best_index, best_score = index, score

    if best_index is None:
        logger.debug(f'No index found for fields {sorted(fields)}')
    else:
        logger.debug(f'Index `{best_index.tag}` selected for fields {sorted(fields)}')
    return best_index
