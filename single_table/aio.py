"""Async access to a repository: the blocking boto3 calls run in the event loop's default executor."""

import asyncio
import functools


async def run_in_executor(func, *args, **kwargs):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


class AsyncQuery:
    "Wraps a Query, keeping its chainable builder methods synchronous"

    def __init__(self, query):
        self.query = query

    def where(self, args):
        self.query.where(args)
        return self

    def sort_direction(self, direction):
        self.query.sort_direction(direction)
        return self

    def limit(self, limit):
        self.query.limit(limit)
        return self

    async def get(self):
        return await run_in_executor(self.query.get)

    async def delete_all(self):
        return await run_in_executor(self.query.delete_all)


class AsyncIndexQueries:
    def __init__(self, index_queries):
        self._index_queries = index_queries

    def __getitem__(self, tag):
        make_query = self._index_queries[tag]
        return lambda: AsyncQuery(make_query())

    def __getattr__(self, tag):
        try:
            return self[tag]
        except KeyError as err:
            raise AttributeError(f'No index tagged `{tag}`') from err


class AsyncRepository:
    """
    Coroutine versions of the Repository operations. Config is read-only, so one repository
    can serve any number of concurrent calls.
    """

    def __init__(self, repository):
        self.repository = repository
        self.config = repository.config
        self.indexes = AsyncIndexQueries(repository.indexes)

    def format_for_dynamo(self, record):
        return self.repository.format_for_dynamo(record)

    def find_index_for_query(self, args):
        return self.repository.find_index_for_query(args)

    async def get(self, record_id, strongly_consistent=False):
        return await run_in_executor(self.repository.get, record_id, strongly_consistent=strongly_consistent)

    async def put(self, record):
        return await run_in_executor(self.repository.put, record)

    async def overwrite(self, record):
        return await run_in_executor(self.repository.overwrite, record)

    async def update(self, record_id, changes):
        return await run_in_executor(self.repository.update, record_id, changes)

    async def delete(self, record_id):
        return await run_in_executor(self.repository.delete, record_id)

    async def batch_get(self, ids):
        return await run_in_executor(self.repository.batch_get, ids)

    async def batch_put(self, records):
        return await run_in_executor(self.repository.batch_put, records)

    async def batch_delete(self, ids):
        return await run_in_executor(self.repository.batch_delete, ids)

    def query(self, next_page_args=None):
        return AsyncQuery(self.repository.query(next_page_args))
