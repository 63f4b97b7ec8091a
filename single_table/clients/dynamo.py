import base64
import json
import logging
import threading

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from ..exceptions import UnprocessedKeysError
from ..indexes import HASH_KEY_ATTRIBUTE, SORT_KEY_ATTRIBUTE

logger = logging.getLogger()

MAX_BATCH_GET_KEYS = 100


class DynamoClient:
    def __init__(self, table_name, create_table_schema=None):
        """
        If create_table_schema is not None, then the table will be created
        on-the-fly. Useful when testing with a mocked dynamodb backend.

        boto3 resources must not be shared between threads, so each thread that uses
        this client gets its own session and resource.
        """
        assert table_name, "Table name is required"
        self.table_name = table_name
        self._local = threading.local()
        self.serializer = TypeSerializer()
        self.deserializer = TypeDeserializer()

        if create_table_schema:
            self.boto3_resource.create_table(TableName=table_name, **create_table_schema)

    @property
    def boto3_resource(self):
        if not hasattr(self._local, 'boto3_resource'):
            self._local.boto3_resource = boto3.session.Session().resource('dynamodb')
        return self._local.boto3_resource

    @property
    def table(self):
        if not hasattr(self._local, 'table'):
            self._local.table = self.boto3_resource.Table(self.table_name)
        return self._local.table

    @property
    def boto3_client(self):
        return self.boto3_resource.meta.client

    @property
    def exceptions(self):
        "Modeled exceptions of the calling thread's client, all of them botocore ClientErrors"
        return self.boto3_client.exceptions

    def get_item(self, pk, **kwargs):
        "Get an item by its primary key"
        return self.table.get_item(Key=pk, **kwargs).get('Item')

    def put_item(self, item):
        "Put an item, replacing any existing item with the same key, and return what was putted"
        self.table.put_item(Item=item)
        return item

    def update_item(self, query_kwargs):
        "Update an existing item and return the new item"
        # ensure query fails if the item does not exist
        cond_exp = 'attribute_exists(#hashKey)'
        if 'ConditionExpression' in query_kwargs:
            cond_exp += ' and (' + query_kwargs['ConditionExpression'] + ')'
        query_kwargs['ConditionExpression'] = cond_exp
        query_kwargs['ExpressionAttributeNames'] = {
            **query_kwargs.get('ExpressionAttributeNames', {}),
            '#hashKey': HASH_KEY_ATTRIBUTE,
        }
        query_kwargs['ReturnValues'] = 'ALL_NEW'
        return self.table.update_item(**query_kwargs).get('Attributes')

    def delete_item(self, pk, **kwargs):
        "Delete an item and return what was deleted"
        return_values = kwargs.pop('ReturnValues', 'ALL_OLD')
        # return None if nothing was deleted, rather than an empty dict
        return self.table.delete_item(Key=pk, ReturnValues=return_values, **kwargs).get('Attributes') or None

    def batch_get_items(self, keys, projection_expression=None):
        """
        Get a bunch of items in one batch request. Order *not* maintained.
        Keys the backend leaves unprocessed raise UnprocessedKeysError, carrying the items that did come back.
        """
        assert len(keys) <= MAX_BATCH_GET_KEYS, f'Max {MAX_BATCH_GET_KEYS} items per batch get request'
        if len(keys) == 0:
            return []
        request = {'Keys': keys}
        if projection_expression:
            request['ProjectionExpression'] = projection_expression

        resp = self.boto3_resource.batch_get_item(RequestItems={self.table_name: request})
        items = resp['Responses'].get(self.table_name, [])
        unprocessed_keys = resp.get('UnprocessedKeys', {}).get(self.table_name, {}).get('Keys', [])
        if unprocessed_keys:
            logger.warning(f'Batch get from `{self.table_name}` left {len(unprocessed_keys)} keys unprocessed')
            raise UnprocessedKeysError(self.table_name, items, unprocessed_keys)
        return items

    def batch_put_items(self, generator):
        "Batch put the items yielded by `generator`. Returns count of how many puts requested."
        cnt = 0
        with self.table.batch_writer() as batch:
            for item in generator:
                batch.put_item(Item=item)
                cnt += 1
        return cnt

    def batch_delete_items(self, generator):
        "Batch delete the items or keys yielded by `generator`. Returns count of how many deletes requested."
        key_generator = ({k: item[k] for k in (HASH_KEY_ATTRIBUTE, SORT_KEY_ATTRIBUTE)} for item in generator)
        return self.batch_delete(key_generator)

    def batch_delete(self, key_generator):
        "Batch delete items by keys yielded by `generator`. Returns count of how many deletes requested."
        cnt = 0
        with self.table.batch_writer() as batch:
            for key in key_generator:
                batch.delete_item(Key=key)
                cnt += 1
        return cnt

    def encode_pagination_token(self, last_evaluated_key):
        "From a LastEvaluatedKey to a obfucated string"
        # https://docs.aws.amazon.com/amazondynamodb/latest/developerguide/Query.html#Query.Pagination
        # numbers travel as their exact text, e.g. {"N": "1.5"}
        typed_key = {k: self.serializer.serialize(v) for k, v in last_evaluated_key.items()}
        return base64.b64encode(json.dumps(typed_key).encode('utf-8')).decode('ascii')

    def decode_pagination_token(self, token):
        "From a obfucated string to a ExclusiveStartKey"
        typed_key = json.loads(base64.b64decode(token.encode('ascii')).decode('utf-8'))
        return {k: self.deserializer.deserialize(v) for k, v in typed_key.items()}

    def query(self, query_kwargs, limit=None, next_token=None):
        "Query the table and return items & pagination token from the result"
        if limit:
            query_kwargs['Limit'] = limit
        if next_token:
            query_kwargs['ExclusiveStartKey'] = self.decode_pagination_token(next_token)
        resp = self.table.query(**query_kwargs)
        last_key = resp.get('LastEvaluatedKey')
        return {
            'items': resp['Items'],
            'nextToken': self.encode_pagination_token(last_key) if last_key else None,
        }

    def generate_all_query(self, query_kwargs):
        "Return a generator that iterates over all results of the query"
        last_key = False
        while last_key is not None:
            start_kwargs = {'ExclusiveStartKey': last_key} if last_key else {}
            resp = self.table.query(**query_kwargs, **start_kwargs)
            for item in resp['Items']:
                yield item
            last_key = resp.get('LastEvaluatedKey')
