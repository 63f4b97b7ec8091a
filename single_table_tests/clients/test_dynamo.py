import threading
from decimal import Decimal
from unittest import mock

import pytest
from boto3.dynamodb.conditions import Key

from single_table.exceptions import UnprocessedKeysError


def pk(n):
    return {'__hashKey': 'Thing#ownerId-o', '__sortKey': f'Thing#n-{n:03}'}


def item(n, **attributes):
    return {**pk(n), 'n': n, **attributes}


def test_put_get_delete_cycle(dynamo_client):
    # check the item is not there
    assert dynamo_client.get_item(pk(1)) is None

    # put it, check it is there
    assert dynamo_client.put_item(item(1, color='red')) == item(1, color='red')
    assert dynamo_client.get_item(pk(1)) == item(1, color='red')

    # put replaces unconditionally
    dynamo_client.put_item(item(1, color='blue'))
    assert dynamo_client.get_item(pk(1)) == item(1, color='blue')

    # delete it, check it is gone
    assert dynamo_client.delete_item(pk(1)) == item(1, color='blue')
    assert dynamo_client.get_item(pk(1)) is None

    # deleting again is a no-op
    assert dynamo_client.delete_item(pk(1)) is None


def test_update_item(dynamo_client):
    dynamo_client.put_item(item(1, color='red', size=3))
    query_kwargs = {
        'Key': pk(1),
        'UpdateExpression': 'SET #c = :c REMOVE #s',
        'ExpressionAttributeNames': {'#c': 'color', '#s': 'size'},
        'ExpressionAttributeValues': {':c': 'green'},
    }
    assert dynamo_client.update_item(query_kwargs) == item(1, color='green')
    assert dynamo_client.get_item(pk(1)) == item(1, color='green')


def test_update_item_must_exist(dynamo_client):
    query_kwargs = {
        'Key': pk(1),
        'UpdateExpression': 'SET #c = :c',
        'ExpressionAttributeNames': {'#c': 'color'},
        'ExpressionAttributeValues': {':c': 'green'},
    }
    with pytest.raises(dynamo_client.exceptions.ConditionalCheckFailedException):
        dynamo_client.update_item(query_kwargs)
    assert dynamo_client.get_item(pk(1)) is None


def test_batch_operations(dynamo_client):
    assert dynamo_client.batch_put_items(item(n) for n in range(5)) == 5
    items = dynamo_client.batch_get_items([pk(n) for n in range(6)])
    assert sorted(i['n'] for i in items) == [0, 1, 2, 3, 4]

    assert dynamo_client.batch_delete_items(item(n) for n in range(2)) == 2
    assert dynamo_client.batch_delete(pk(n) for n in range(2, 4)) == 2
    items = dynamo_client.batch_get_items([pk(n) for n in range(5)])
    assert [i['n'] for i in items] == [4]

    assert dynamo_client.batch_get_items([]) == []
    with pytest.raises(AssertionError):
        dynamo_client.batch_get_items([pk(n) for n in range(101)])


def test_batch_get_unprocessed_keys(dynamo_client):
    resp = {
        'Responses': {dynamo_client.table_name: [item(1)]},
        'UnprocessedKeys': {dynamo_client.table_name: {'Keys': [pk(2)]}},
    }
    with mock.patch.object(dynamo_client.boto3_resource, 'batch_get_item', return_value=resp) as batch_get_item:
        with pytest.raises(UnprocessedKeysError) as error_info:
            dynamo_client.batch_get_items([pk(1), pk(2)])

    # one request, the retry is up to the caller
    assert batch_get_item.call_count == 1
    assert error_info.value.items == [item(1)]
    assert error_info.value.keys == [pk(2)]


def test_resource_per_thread(dynamo_client):
    dynamo_client.put_item(item(1))
    seen = {}

    def worker():
        seen['resource'] = dynamo_client.boto3_resource
        seen['item'] = dynamo_client.get_item(pk(1))

    thread = threading.Thread(target=worker)
    thread.start()
    thread.join()
    assert seen['resource'] is not dynamo_client.boto3_resource
    assert seen['item'] == item(1)
    assert dynamo_client.boto3_resource is dynamo_client.boto3_resource


def test_pagination_token_round_trip(dynamo_client):
    last_key = {
        '__hashKey': 'a',
        '__sortKey': 'b',
        'n': Decimal('3'),
        'x': Decimal('0.12345678901234567890123456789'),
    }
    token = dynamo_client.encode_pagination_token(last_key)
    assert isinstance(token, str)
    assert dynamo_client.decode_pagination_token(token) == last_key


def test_query_pages(dynamo_client):
    dynamo_client.batch_put_items(item(n) for n in range(5))

    def query_kwargs():
        return {'KeyConditionExpression': Key('__hashKey').eq('Thing#ownerId-o')}

    resp = dynamo_client.query(query_kwargs(), limit=2)
    assert [i['n'] for i in resp['items']] == [0, 1]
    assert resp['nextToken']

    resp = dynamo_client.query(query_kwargs(), limit=2, next_token=resp['nextToken'])
    assert [i['n'] for i in resp['items']] == [2, 3]

    resp = dynamo_client.query(query_kwargs(), limit=2, next_token=resp['nextToken'])
    assert [i['n'] for i in resp['items']] == [4]
    assert resp['nextToken'] is None

    resp = dynamo_client.query(query_kwargs())
    assert len(resp['items']) == 5
    assert resp['nextToken'] is None


def test_generate_all_query(dynamo_client):
    dynamo_client.batch_put_items(item(n) for n in range(5))
    query_kwargs = {'KeyConditionExpression': Key('__hashKey').eq('Thing#ownerId-o'), 'Limit': 2}
    assert [i['n'] for i in dynamo_client.generate_all_query(query_kwargs)] == [0, 1, 2, 3, 4]
