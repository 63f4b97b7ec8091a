import collections
import logging

from .clients import DynamoClient
from .config import get_config
from .exceptions import FormatError, UnprocessedKeysError
from .formatter import DocumentFormatter
from .indexes import HASH_KEY_ATTRIBUTE, SORT_KEY_ATTRIBUTE
from .query import IndexQueries, Query
from .selector import filter_fields, find_index_for_query

logger = logging.getLogger()

BATCH_GET_CHUNK_SIZE = 100


class Repository:
    """
    CRUD and queries for one type of record stored in a shared single table.
    All reads and writes by id go through the primary index.
    """

    def __init__(self, config, dynamo_client):
        self.config = config
        self.client = dynamo_client
        self.formatter = DocumentFormatter(config)
        self.indexes = IndexQueries(self)

    def format_for_dynamo(self, record):
        return self.formatter.format_for_dynamo(record)

    def strip(self, item):
        return self.formatter.strip(item)

    def find_index_for_query(self, args):
        return find_index_for_query(self.config.indexes, filter_fields(args))

    def pk(self, record_id):
        return self.formatter.pk(record_id)

    def get(self, record_id, strongly_consistent=False):
        "The record with the given primary key fields, or None"
        return self.strip(self.client.get_item(self.pk(record_id), ConsistentRead=strongly_consistent))

    def put(self, record):
        "Write the whole record, replacing any record with the same key"
        self.client.put_item(self.format_for_dynamo(record))
        return dict(record)

    def overwrite(self, record):
        "Write the whole record, replacing any record with the same key"
        return self.put(record)

    def delete(self, record_id):
        "Delete by primary key. Deleting a record that does not exist is a no-op."
        self.client.delete_item(self.pk(record_id))

    def update(self, record_id, changes):
        """
        Merge `changes` into the existing record, a value of None removing that field.
        Index attributes are re-derived from the merged record, so the record joins or leaves
        secondary indexes as their hash key fields come and go.
        """
        pk = self.pk(record_id)
        for field in self.formatter.primary_key_fields:
            if field in changes and changes[field] != record_id[field]:
                raise FormatError(field, changes[field], 'primary key fields cannot be updated')
        reserved = self.formatter.engine_attributes & set(changes)
        if reserved:
            field = sorted(reserved)[0]
            raise FormatError(field, changes[field], 'field name is reserved for index attributes')

        old_item = self.client.get_item(pk, ConsistentRead=True) or {}
        record = self.strip(old_item) if old_item else {f: record_id[f] for f in self.formatter.primary_key_fields}
        record.update(changes)
        record = {k: v for k, v in record.items() if v is not None}
        new_item = self.format_for_dynamo(record)

        exp_actions = collections.defaultdict(list)
        exp_names = {}
        exp_values = {}
        for i, (name, value) in enumerate(new_item.items()):
            if name in pk or (name in old_item and old_item[name] == value):
                continue
            exp_actions['SET'].append(f'#s{i} = :s{i}')
            exp_names[f'#s{i}'] = name
            exp_values[f':s{i}'] = value
        for i, name in enumerate(old_item):
            if name not in new_item:
                exp_actions['REMOVE'].append(f'#r{i}')
                exp_names[f'#r{i}'] = name

        if not exp_actions:
            return record

        query_kwargs = {
            'Key': pk,
            'UpdateExpression': ' '.join([f'{k} {", ".join(v)}' for k, v in exp_actions.items()]),
            'ExpressionAttributeNames': exp_names,
        }
        if exp_values:
            query_kwargs['ExpressionAttributeValues'] = exp_values
        return self.strip(self.client.update_item(query_kwargs))

    def batch_get(self, ids):
        """
        Records for the given ids that exist, in no particular order.
        If the backend leaves keys unprocessed, UnprocessedKeysError is raised once every chunk was tried,
        with the records that were read as `items` and the ids still to fetch as `keys`.
        """
        ids_by_key = {}
        for record_id in ids:
            pk = self.pk(record_id)
            ids_by_key.setdefault((pk[HASH_KEY_ATTRIBUTE], pk[SORT_KEY_ATTRIBUTE]), record_id)
        keys = [{HASH_KEY_ATTRIBUTE: h, SORT_KEY_ATTRIBUTE: s} for h, s in ids_by_key]

        items, unprocessed_ids = [], []
        for start in range(0, len(keys), BATCH_GET_CHUNK_SIZE):
            try:
                items.extend(self.client.batch_get_items(keys[start : start + BATCH_GET_CHUNK_SIZE]))
            except UnprocessedKeysError as err:
                items.extend(err.items)
                unprocessed_ids.extend(ids_by_key[(k[HASH_KEY_ATTRIBUTE], k[SORT_KEY_ATTRIBUTE])] for k in err.keys)
        records = [self.strip(item) for item in items]
        if unprocessed_ids:
            raise UnprocessedKeysError(self.config.table_name, records, unprocessed_ids)
        return records

    def batch_put(self, records):
        "Put many records. Returns count of how many puts requested."
        return self.client.batch_put_items(self.format_for_dynamo(record) for record in records)

    def batch_delete(self, ids):
        "Delete many records by id. Returns count of how many deletes requested."
        return self.client.batch_delete(self.pk(record_id) for record_id in ids)

    def query(self, next_page_args=None):
        "A query that picks its index from the where() fields, or resumes from a prior page"
        return Query(self, next_page_args=next_page_args)


def get_repository(dynamo_client=None, **config_kwargs):
    """
    Build a repository from the keyword arguments of `get_config`.
    Without a client, one is created for the configured table.
    """
    config = get_config(**config_kwargs)
    if dynamo_client is None:
        dynamo_client = DynamoClient(table_name=config.table_name)
    elif dynamo_client.table_name != config.table_name:
        logger.warning(
            f'Repository `{config.object_name}` is configured for table `{config.table_name}` '
            f'but uses a client for table `{dynamo_client.table_name}`'
        )
    return Repository(config, dynamo_client)
