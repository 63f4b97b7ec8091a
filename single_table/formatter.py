
from .config import encoding_kwargs
from .enums import IndexKind
from .exceptions import FormatError
from .indexes import HASH_KEY_ATTRIBUTE, OBJECT_TYPE_ATTRIBUTE, SORT_KEY_ATTRIBUTE, engine_attributes
from .keys import encode_key, missing_fields


class DocumentFormatter:
    "Translates between application records and the documents stored in the shared table"

    def __init__(self, config):
        self.config = config
        self.encoding = encoding_kwargs(config)
        self.engine_attributes = engine_attributes(config.indexes)

    @property
    def primary_key_fields(self):
        index = self.config.primary_index
        return index.hash_key_fields + index.sort_key_fields

    def encode_hash_key(self, index, record):
        return encode_key(record, index.hash_key_fields, index.hash_key_descriptor, **self.encoding)

    def encode_sort_key(self, index, record):
        return encode_key(record, index.sort_key_fields, index.sort_key_descriptor, **self.encoding)

    def pk(self, record):
        "The physical primary key of a record or id"
        missing = missing_fields(record, self.primary_key_fields)
        if missing:
            raise FormatError(missing[0], None, 'primary key fields are required')
        index = self.config.primary_index
        return {
            HASH_KEY_ATTRIBUTE: self.encode_hash_key(index, record),
            SORT_KEY_ATTRIBUTE: self.encode_sort_key(index, record),
        }

    def check_sort_key_fields(self, index, record):
        "A sort key may stop early, but a stored one may not skip a field and carry on after it"
        missing = None
        for field in index.sort_key_fields:
            if record.get(field) is None:
                missing = missing or field
            elif missing:
                raise FormatError(missing, None, f'index `{index.tag}` needs it to store the later field `{field}`')

    def index_attributes(self, record):
        "The key attributes of every secondary index the record belongs to"
        attributes = {}
        for index in self.config.indexes:
            if index.kind in (IndexKind.PRIMARY, IndexKind.CUSTOM_GLOBAL):
                continue
            if missing_fields(record, index.hash_key_fields):
                continue
            self.check_sort_key_fields(index, record)
            # local indexes share the primary hash key attribute
            if index.kind == IndexKind.GLOBAL:
                attributes[index.hash_key_attribute] = self.encode_hash_key(index, record)
            attributes[index.sort_key_attribute] = self.encode_sort_key(index, record)
        return attributes

    def format_for_dynamo(self, record):
        """
        The document stored for `record`: its own fields, the primary key, the object type and
        the key attributes of every secondary index whose hash key fields are all present.
        """
        overlap = self.engine_attributes & set(record)
        if overlap:
            field = sorted(overlap)[0]
            raise FormatError(field, record[field], 'field name is reserved for index attributes')
        return {
            **record,
            **self.pk(record),
            OBJECT_TYPE_ATTRIBUTE: self.config.object_name,
            **self.index_attributes(record),
        }

    def strip(self, item):
        "Drop everything the engine added, giving back the application record"
        if item is None:
            return None
        return {k: v for k, v in item.items() if k not in self.engine_attributes}
