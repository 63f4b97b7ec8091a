import os

import moto
import pytest

from single_table.clients import DynamoClient
from single_table.indexes import GSI_SLOTS, LSI_SLOTS
from single_table.provisioning import table_schema

# moto signs fake requests, it just needs something to sign them with
os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
os.environ['AWS_SECURITY_TOKEN'] = 'testing'
os.environ['AWS_SESSION_TOKEN'] = 'testing'
os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'

TABLE_NAME = 'main-table'


@pytest.fixture
def dynamo_client():
    with moto.mock_aws():
        schema = table_schema(lsi_slots=range(LSI_SLOTS), gsi_slots=range(GSI_SLOTS))
        yield DynamoClient(table_name=TABLE_NAME, create_table_schema=schema)


@pytest.fixture
def purchase_config_kwargs():
    yield {
        'table_name': TABLE_NAME,
        'object_name': 'Purchase',
        'hash_key_fields': ['userId'],
        'sort_key_fields': ['itemId', 'id'],
        'composite_key_separator': '#',
        'should_pad_numbers_in_indexes': False,
        'indexes': {
            'getPurchasersOfItem': {
                'which': 0,
                'hash_key_fields': ['itemId'],
                'sort_key_fields': ['purchaseDate', 'userId'],
            },
            'latestPurchases': {
                'sort_key_fields': ['purchaseDate', 'itemId'],
                'which': 1,
            },
            'location': {
                'which': 2,
                'sort_key_fields': ['country', 'state', 'city', 'purchaseDate', 'itemId'],
            },
            'latestPurchasesByCountry': {
                'which': 3,
                'sort_key_fields': ['country', 'purchaseDate'],
            },
        },
    }


@pytest.fixture
def purchase():
    yield {
        'id': '1234',
        'purchaseDate': 1572481596741,
        'city': 'provo',
        'state': 'ut',
        'country': 'usa',
        'itemId': 'awesomecouch',
        'userId': '1208493',
    }
