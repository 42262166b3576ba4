"""
PLC Tag Exchange - move tag tables between PLC vendors and keep them in sync.

Converts tag definitions between a vendor-neutral model and the native
formats of three PLC ecosystems, and keeps a project's persisted tags in
step with structured text being edited live.

Supported formats:
    - Rockwell / Allen-Bradley: tag CSV, L5X
    - Siemens / TIA Portal: CSV, tag table XML, XLSX
    - Beckhoff / TwinCAT: CSV, variable list XML

Usage:
    from plc_tag_exchange import InMemoryTagStore, import_tags, export_tags

    store = InMemoryTagStore()
    with open('tags.csv', 'rb') as f:
        result = import_tags(store, 'rockwell', 1, f.read(), 'text/csv')
    if not result.success:
        for err in result.errors:
            print(err.row, err.errors)

    # Re-export the same tags for TIA Portal
    data = export_tags(store, 'siemens', 1, 'xlsx')

    # Address grammar checks
    from plc_tag_exchange import addresses
    addresses.validate_address('DB1.DBX0.1', 'siemens')   # True
    addresses.derive_tag_type('%QX0.1', 'beckhoff')       # TagType.OUTPUT

    # Live sync of structured text
    from plc_tag_exchange import reconcile_tags, parse_st_variables
    parsed = parse_st_variables('VAR\\n  Start : BOOL;\\nEND_VAR')
    reconcile_tags(store, directory, 1, user_id, parsed)
"""

__version__ = '0.1.0'


def __getattr__(name):
    """Lazy import so that submodules load only when used."""
    if name in ('import_tags', 'export_tags'):
        from . import importer
        return getattr(importer, name)
    if name == 'get_codec':
        from .codec import get_codec
        return get_codec
    if name == 'reconcile_tags':
        from .reconciler import reconcile_tags
        return reconcile_tags
    if name == 'parse_st_variables':
        from .st_parser import parse_st_variables
        return parse_st_variables
    if name in ('InMemoryTagStore', 'InMemoryProjectDirectory'):
        from . import store
        return getattr(store, name)
    if name == 'TagSyncService':
        from .sync_service import TagSyncService
        return TagSyncService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'import_tags',
    'export_tags',
    'get_codec',
    'reconcile_tags',
    'parse_st_variables',
    'InMemoryTagStore',
    'InMemoryProjectDirectory',
    'TagSyncService',
]
