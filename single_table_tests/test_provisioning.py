import boto3
import moto
import pytest

from single_table import ensure_table_and_indexes_exist, get_config, get_repository
from single_table.clients import DynamoClient
from single_table.provisioning import table_schema


@pytest.fixture
def purchase_config(purchase_config_kwargs):
    yield get_config(**purchase_config_kwargs)


@pytest.fixture
def dynamo_resource():
    with moto.mock_aws():
        yield boto3.resource('dynamodb')


def test_table_schema_no_indexes():
    schema = table_schema()
    assert schema == {
        'KeySchema': [
            {'AttributeName': '__hashKey', 'KeyType': 'HASH'},
            {'AttributeName': '__sortKey', 'KeyType': 'RANGE'},
        ],
        'BillingMode': 'PAY_PER_REQUEST',
        'AttributeDefinitions': [
            {'AttributeName': '__hashKey', 'AttributeType': 'S'},
            {'AttributeName': '__sortKey', 'AttributeType': 'S'},
        ],
    }


def test_table_schema_from_config(purchase_config):
    schema = table_schema([purchase_config])
    assert [lsi['IndexName'] for lsi in schema['LocalSecondaryIndexes']] == ['lsi1', 'lsi2', 'lsi3']
    assert schema['LocalSecondaryIndexes'][0]['KeySchema'] == [
        {'AttributeName': '__hashKey', 'KeyType': 'HASH'},
        {'AttributeName': '__lsi1', 'KeyType': 'RANGE'},
    ]
    assert [gsi['IndexName'] for gsi in schema['GlobalSecondaryIndexes']] == ['gsi0']
    assert schema['GlobalSecondaryIndexes'][0]['KeySchema'] == [
        {'AttributeName': '__gsiHash0', 'KeyType': 'HASH'},
        {'AttributeName': '__gsiSort0', 'KeyType': 'RANGE'},
    ]
    assert [attr['AttributeName'] for attr in schema['AttributeDefinitions']] == [
        '__hashKey',
        '__sortKey',
        '__lsi1',
        '__lsi2',
        '__lsi3',
        '__gsiHash0',
        '__gsiSort0',
    ]


def test_table_schema_explicit_slots(purchase_config):
    schema = table_schema([purchase_config], lsi_slots=[0, 1], gsi_slots=[4])
    assert [lsi['IndexName'] for lsi in schema['LocalSecondaryIndexes']] == ['lsi0', 'lsi1', 'lsi2', 'lsi3']
    assert [gsi['IndexName'] for gsi in schema['GlobalSecondaryIndexes']] == ['gsi0', 'gsi4']


def test_custom_indexes_are_not_provisioned():
    config = get_config(
        table_name='t',
        object_name='User',
        hash_key_fields=['id'],
        indexes={'byEmail': {'hash_key_attribute_name': 'email', 'sort_key_attribute_name': 'signedUpAt'}},
    )
    assert 'GlobalSecondaryIndexes' not in table_schema([config])


def test_ensure_table_and_indexes_exist(dynamo_resource, purchase_config, purchase_config_kwargs):
    user_config = get_config(table_name=purchase_config.table_name, object_name='User', hash_key_fields=['id'])
    assert ensure_table_and_indexes_exist([purchase_config, user_config], dynamo_resource) == [
        purchase_config.table_name
    ]

    description = dynamo_resource.meta.client.describe_table(TableName=purchase_config.table_name)['Table']
    assert description['TableStatus'] == 'ACTIVE'
    assert len(description['LocalSecondaryIndexes']) == 3
    assert len(description['GlobalSecondaryIndexes']) == 1

    # a second call leaves the existing table alone
    assert ensure_table_and_indexes_exist([purchase_config], dynamo_resource) == []

    # the provisioned table serves repository queries
    repo = get_repository(dynamo_client=DynamoClient(purchase_config.table_name), **purchase_config_kwargs)
    purchase = {'userId': 'u', 'itemId': 'i', 'id': '1', 'purchaseDate': 5}
    repo.put(purchase)
    assert repo.indexes.latestPurchases().where({'userId': 'u'}).get().results == [purchase]
    assert repo.indexes.getPurchasersOfItem().where({'itemId': 'i'}).get().results == [purchase]


def test_ensure_accepts_repositories(dynamo_resource, purchase_config_kwargs):
    client = DynamoClient('other-table', create_table_schema=table_schema())
    repo = get_repository(dynamo_client=client, **{**purchase_config_kwargs, 'table_name': 'other-table'})
    assert ensure_table_and_indexes_exist([repo], dynamo_resource) == []
