#!/usr/bin/env python

import argparse
import logging
import os
import sys

import boto3
import dotenv

dotenv.load_dotenv()

# https://stackoverflow.com/questions/16981921
SCRIPT_PATH = os.path.realpath(os.path.join(os.getcwd(), os.path.expanduser(__file__)))
sys.path.append(os.path.dirname(os.path.dirname(SCRIPT_PATH)))
from single_table.indexes import GSI_SLOTS, LSI_SLOTS  # noqa E402
from single_table.logging import LogLevelContext, command_logging  # noqa E402
from single_table.provisioning import table_schema  # noqa E402

logger = logging.getLogger()


def parse_args():
    parser = argparse.ArgumentParser(description='Create a single table with the given index slots')
    parser.add_argument('-t', dest='table_name', default=os.environ.get('DYNAMO_TABLE'), help='table name')
    parser.add_argument(
        '--lsi', dest='lsi_slots', type=int, nargs='*', default=[], choices=range(LSI_SLOTS), help='local slots'
    )
    parser.add_argument(
        '--gsi', dest='gsi_slots', type=int, nargs='*', default=[], choices=range(GSI_SLOTS), help='global slots'
    )
    args = parser.parse_args()
    if not args.table_name:
        parser.error('a table name is required, either with -t or via DYNAMO_TABLE')
    return args.table_name, args.lsi_slots, args.gsi_slots


@command_logging(extras={'command': 'create-table'})
def main():
    table_name, lsi_slots, gsi_slots = parse_args()
    dynamo_resource = boto3.resource('dynamodb')
    schema = table_schema(lsi_slots=lsi_slots, gsi_slots=gsi_slots)

    print(f'Creating table `{table_name}`... ', end='', flush=True)
    table = dynamo_resource.create_table(TableName=table_name, **schema)
    table.wait_until_exists()
    print('done.')

    with LogLevelContext(logger, logging.INFO):
        logger.info(f'Created table `{table_name}` with local slots {lsi_slots} and global slots {gsi_slots}')


if __name__ == '__main__':
    main()
