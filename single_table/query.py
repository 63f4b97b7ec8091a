import collections
import logging

from boto3.dynamodb.conditions import Attr, Key

from .enums import SortDirection
from .exceptions import QueryError
from .indexes import OBJECT_TYPE_ATTRIBUTE
from .keys import encode_key, get_sort_key_for_begins_with
from .selector import filter_fields, find_index_for_query, match_index

logger = logging.getLogger()

QueryResult = collections.namedtuple('QueryResult', ['results', 'next_page_args'])


class Query:
    """
    Chainable query against one repository.

        repo.indexes.latestPurchases().where({'userId': 'jim'}).sort_direction('desc').limit(10).get()

    A query built from `repo.query()` picks its index from the where() fields. Index lookup is
    deferred to get() / delete_all(), which raise QueryError when no index fits.
    """

    def __init__(self, repository, tag=None, next_page_args=None):
        self.repository = repository
        self.tag = tag
        self.args = None
        self.direction = SortDirection.ASC
        self.page_size = None
        self.next_token = None

        if next_page_args:
            self.tag = next_page_args['tag']
            self.args = dict(next_page_args['where'])
            self.direction = next_page_args['sortDirection']
            self.page_size = next_page_args['limit']
            self.next_token = next_page_args['nextToken']

    @property
    def config(self):
        return self.repository.config

    def where(self, args):
        self.args = dict(args)
        return self

    def sort_direction(self, direction):
        assert direction in SortDirection._ALL, f'Invalid sort direction `{direction}`'
        self.direction = direction
        return self

    def limit(self, limit):
        assert isinstance(limit, int) and limit > 0, f'Limit must be a positive integer: `{limit}`'
        self.page_size = limit
        return self

    def resolve_index(self):
        "The index serving this query and how many of its sort key fields the filter covers"
        fields = filter_fields(self.args or {})
        if self.tag is None:
            index = find_index_for_query(self.config.indexes, fields)
            if index is None:
                raise QueryError(fields)
        else:
            index = self.config.indexes_by_tag[self.tag]
            if not fields:
                raise QueryError(fields, tag=self.tag)
        matched = match_index(index, fields)
        if matched is None:
            raise QueryError(fields, tag=self.tag)
        return index, matched

    def query_kwargs(self, index, matched):
        args = self.args
        if index.is_custom_index:
            key_cond = Key(index.hash_key_attribute).eq(args[index.hash_key_attribute])
            if matched:
                sort_value = args[index.sort_key_attribute]
                sort_key = Key(index.sort_key_attribute)
                if isinstance(sort_value, str):
                    key_cond &= sort_key.begins_with(sort_value)
                else:
                    key_cond &= sort_key.eq(sort_value)
        else:
            encoding = self.repository.formatter.encoding
            hash_value = encode_key(args, index.hash_key_fields, index.hash_key_descriptor, **encoding)
            sort_prefix = get_sort_key_for_begins_with(
                args, index.sort_key_fields[:matched], index.sort_key_descriptor, **encoding
            )
            key_cond = Key(index.hash_key_attribute).eq(hash_value) & Key(index.sort_key_attribute).begins_with(
                sort_prefix
            )

        query_kwargs = {
            'KeyConditionExpression': key_cond,
            'ScanIndexForward': self.direction == SortDirection.ASC,
        }
        if index.name:
            query_kwargs['IndexName'] = index.name
        if index.is_custom_index:
            # attributes of a custom index may be shared by several object types
            query_kwargs['FilterExpression'] = Attr(OBJECT_TYPE_ATTRIBUTE).eq(self.config.object_name)
        return query_kwargs

    def page_args(self, index, next_token):
        return {
            'tag': index.tag,
            'where': dict(self.args),
            'sortDirection': self.direction,
            'limit': self.page_size,
            'nextToken': next_token,
        }

    def get(self):
        "Fetch one page of results"
        index, matched = self.resolve_index()
        logger.debug(f'Querying `{self.config.object_name}` on index `{index.tag}` with {matched} sort fields')
        resp = self.repository.client.query(
            self.query_kwargs(index, matched), limit=self.page_size, next_token=self.next_token
        )
        results = [self.repository.strip(item) for item in resp['items']]
        next_page_args = self.page_args(index, resp['nextToken']) if resp['nextToken'] else None
        return QueryResult(results, next_page_args)

    def generate_all(self):
        "Iterate over every matching record, across all pages"
        index, matched = self.resolve_index()
        for item in self.repository.client.generate_all_query(self.query_kwargs(index, matched)):
            yield self.repository.strip(item)

    def delete_all(self):
        """
        Delete every matching item, a page at a time, with limit() as the page size.
        Not atomic: items written concurrently may or may not be deleted. Returns count of deletes requested.
        """
        index, matched = self.resolve_index()
        next_token = self.next_token
        cnt = 0
        while True:
            resp = self.repository.client.query(
                self.query_kwargs(index, matched), limit=self.page_size, next_token=next_token
            )
            cnt += self.repository.client.batch_delete_items(resp['items'])
            next_token = resp['nextToken']
            if not next_token:
                break
        logger.info(f'Deleted {cnt} `{self.config.object_name}` items through index `{index.tag}`')
        return cnt


class IndexQueries:
    "Query builders by index tag, as in `repo.indexes.latestPurchases()` or `repo.indexes['latestPurchases']()`"

    def __init__(self, repository):
        self._repository = repository

    def __getitem__(self, tag):
        if tag not in self._repository.config.indexes_by_tag:
            raise KeyError(tag)
        return lambda: Query(self._repository, tag=tag)

    def __getattr__(self, tag):
        try:
            return self[tag]
        except KeyError as err:
            raise AttributeError(f'No index tagged `{tag}`') from err

    def __iter__(self):
        return iter(tag for tag in self._repository.config.indexes_by_tag if tag)
