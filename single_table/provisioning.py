import collections
import logging

import boto3

from .enums import IndexKind
from .indexes import (
    GSI_HASH_KEY_ATTRIBUTES,
    GSI_NAMES,
    GSI_SORT_KEY_ATTRIBUTES,
    HASH_KEY_ATTRIBUTE,
    LSI_NAMES,
    LSI_SORT_KEY_ATTRIBUTES,
    SORT_KEY_ATTRIBUTE,
)

logger = logging.getLogger()


def key_schema(hash_attribute, sort_attribute):
    return [
        {'AttributeName': hash_attribute, 'KeyType': 'HASH'},
        {'AttributeName': sort_attribute, 'KeyType': 'RANGE'},
    ]


def table_schema(configs=(), lsi_slots=(), gsi_slots=()):
    """
    The `create_table` kwargs (less TableName) for a table holding the given repository configs.
    Only the local and global slots the configs use, or that are listed explicitly, get an index.
    """
    lsi_slots = set(lsi_slots)
    gsi_slots = set(gsi_slots)
    for config in configs:
        for index in config.indexes:
            if index.kind == IndexKind.LOCAL:
                lsi_slots.add(index.which)
            elif index.kind == IndexKind.GLOBAL:
                gsi_slots.add(index.which)

    attribute_names = [HASH_KEY_ATTRIBUTE, SORT_KEY_ATTRIBUTE]
    schema = {
        'KeySchema': key_schema(HASH_KEY_ATTRIBUTE, SORT_KEY_ATTRIBUTE),
        'BillingMode': 'PAY_PER_REQUEST',
    }
    if lsi_slots:
        schema['LocalSecondaryIndexes'] = [
            {
                'IndexName': LSI_NAMES[which],
                'KeySchema': key_schema(HASH_KEY_ATTRIBUTE, LSI_SORT_KEY_ATTRIBUTES[which]),
                'Projection': {'ProjectionType': 'ALL'},
            }
            for which in sorted(lsi_slots)
        ]
        attribute_names += [LSI_SORT_KEY_ATTRIBUTES[which] for which in sorted(lsi_slots)]
    if gsi_slots:
        schema['GlobalSecondaryIndexes'] = [
            {
                'IndexName': GSI_NAMES[which],
                'KeySchema': key_schema(GSI_HASH_KEY_ATTRIBUTES[which], GSI_SORT_KEY_ATTRIBUTES[which]),
                'Projection': {'ProjectionType': 'ALL'},
            }
            for which in sorted(gsi_slots)
        ]
        for which in sorted(gsi_slots):
            attribute_names += [GSI_HASH_KEY_ATTRIBUTES[which], GSI_SORT_KEY_ATTRIBUTES[which]]

    schema['AttributeDefinitions'] = [{'AttributeName': name, 'AttributeType': 'S'} for name in attribute_names]
    return schema


def ensure_table_and_indexes_exist(repositories, dynamo_resource=None):
    """
    Create every table the given repositories (or repository configs) live in, if missing,
    and wait for them to become active. Existing tables are left as they are.
    Custom indexes point at application attributes and are not created here.
    """
    dynamo_resource = dynamo_resource or boto3.resource('dynamodb')
    configs_by_table = collections.defaultdict(list)
    for repository in repositories:
        config = getattr(repository, 'config', repository)
        configs_by_table[config.table_name].append(config)

    paginator = dynamo_resource.meta.client.get_paginator('list_tables')
    existing_tables = {name for page in paginator.paginate() for name in page['TableNames']}
    created = []
    for table_name, configs in configs_by_table.items():
        if table_name in existing_tables:
            logger.info(f'Table `{table_name}` already exists')
            continue
        logger.info(f'Creating table `{table_name}` for {[config.object_name for config in configs]}')
        dynamo_resource.create_table(TableName=table_name, **table_schema(configs))
        created.append(table_name)

    waiter = dynamo_resource.meta.client.get_waiter('table_exists')
    for table_name in created:
        waiter.wait(TableName=table_name)
        logger.info(f'Table `{table_name}` is active')
    return created
