from decimal import Decimal

from .exceptions import FormatError

DEFAULT_SEPARATOR = '#'
DEFAULT_PADDED_NUMBER_LENGTH = 20


def format_value(
    field, value, separator=DEFAULT_SEPARATOR, should_pad=True, padded_number_length=DEFAULT_PADDED_NUMBER_LENGTH
):
    "Render one field value as it appears inside a composite key"
    if isinstance(value, str):
        if separator in value:
            raise FormatError(field, value, f'strings may not contain the key separator `{separator}`')
        return value

    # bool is an int subclass, but True/False have no sane place in a sort order
    if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
        raise FormatError(field, value, f'unsupported type `{type(value).__name__}`')

    if isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            raise FormatError(field, value, 'only integral numbers can be encoded')
        value = int(value)

    if value < 0:
        raise FormatError(field, value, 'negative numbers cannot be encoded')

    value_str = str(value)
    if not should_pad:
        return value_str
    if len(value_str) > padded_number_length:
        raise FormatError(field, value, f'number is wider than the padded length of {padded_number_length}')
    return value_str.rjust(padded_number_length, '0')


def encode_key(
    record,
    fields,
    descriptor,
    separator=DEFAULT_SEPARATOR,
    should_pad=True,
    padded_number_length=DEFAULT_PADDED_NUMBER_LENGTH,
):
    """
    Build a composite key of the form `descriptor#field1-value1#field2-value2`.
    The chain stops at the first field missing from `record`, so a partial record yields
    a prefix usable in a begins_with condition.

    Keys do not record value types: `5` and `'5'` (or its zero padded form) encode the same,
    so each field must always hold the same type.
    """
    key = descriptor
    for field in fields:
        if record.get(field) is None:
            break
        value_str = format_value(field, record[field], separator, should_pad, padded_number_length)
        key += f'{separator}{field}-{value_str}'
    return key


def get_sort_key_for_begins_with(
    args,
    sort_key_fields,
    sort_key_descriptor,
    separator=DEFAULT_SEPARATOR,
    should_pad=True,
    padded_number_length=DEFAULT_PADDED_NUMBER_LENGTH,
):
    "The sort key prefix matching every item whose leading sort fields equal those in `args`"
    return encode_key(args, sort_key_fields, sort_key_descriptor, separator, should_pad, padded_number_length)


def missing_fields(record, fields):
    return [field for field in fields if record.get(field) is None]
