class IndexKind:
    PRIMARY = 'primary'
    LOCAL = 'local'
    GLOBAL = 'global'
    CUSTOM_GLOBAL = 'customGlobal'

    _ALL = (PRIMARY, LOCAL, GLOBAL, CUSTOM_GLOBAL)


class SortDirection:
    ASC = 'asc'
    DESC = 'desc'

    _ALL = (ASC, DESC)
