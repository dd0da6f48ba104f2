"""
Metadata object factory.

Creates and modifies instances of externally-defined record types by name and
a loosely-typed property map:
- TypeCatalog discovers the record types
- RepositoryResolver binds each type to a creation operation
- PropertyBinder maps parameters onto fresh instances
- ObjectFactory orchestrates create/read/save over two backing stores
"""

__version__ = "0.1.0"
