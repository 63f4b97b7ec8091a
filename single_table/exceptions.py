class SingleTableException(Exception):
    pass


class ConfigError(SingleTableException):
    def __init__(self, query_name, message):
        self.query_name = query_name
        self.message = message

    def __str__(self):
        if self.query_name:
            return f'Index `{self.query_name}` is not valid: {self.message}'
        return f'Repository config is not valid: {self.message}'


class QueryError(SingleTableException):
    def __init__(self, fields, tag=None):
        self.fields = sorted(fields)
        self.tag = tag

    def __str__(self):
        if self.tag is not None:
            return f'Index `{self.tag}` cannot be queried with fields `{self.fields}`'
        return f'No index found for fields `{self.fields}`'


class FormatError(SingleTableException):
    def __init__(self, field, value, reason):
        self.field = field
        self.value = value
        self.reason = reason

    def __str__(self):
        return f'Cannot encode field `{self.field}` with value `{self.value!r}`: {self.reason}'


class UnprocessedKeysError(SingleTableException):
    "A batch get came back partial. Retrying is left to the caller."

    def __init__(self, table_name, items, keys):
        self.table_name = table_name
        self.items = items
        self.keys = keys

    def __str__(self):
        return f'Batch get from `{self.table_name}` left {len(self.keys)} keys unprocessed'
