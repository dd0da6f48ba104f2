"""
Default record-type registry.

Every concrete ``Ax*`` dataclass in this module is a creatable metadata
object. Element types (fields, methods, data sources) carry no ``Ax`` prefix
because they only live inside their parent object.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class AccessLevel(str, Enum):
    PUBLIC = "Public"
    PROTECTED = "Protected"
    PRIVATE = "Private"
    INTERNAL = "Internal"


class TableGroup(str, Enum):
    MISCELLANEOUS = "Miscellaneous"
    PARAMETER = "Parameter"
    GROUP = "Group"
    MAIN = "Main"
    TRANSACTION = "Transaction"
    WORKSHEET_HEADER = "WorksheetHeader"
    WORKSHEET_LINE = "WorksheetLine"
    REFERENCE = "Reference"


class TableType(str, Enum):
    REGULAR = "RegularTable"
    TEMP_DB = "TempDB"
    IN_MEMORY = "InMemory"


class EnumStyle(str, Enum):
    COMBO_BOX = "ComboBox"
    RADIO_BUTTON = "RadioButton"


class FormDesignPattern(str, Enum):
    CUSTOM = "Custom"
    SIMPLE = "SimplePattern"
    SIMPLE_LIST = "SimpleList"
    SIMPLE_LIST_DETAILS = "SimpleListDetails"
    DETAILS_MASTER = "DetailsMaster"
    DETAILS_TRANSACTION = "DetailsTransaction"
    DIALOG = "Dialog"
    LIST_PAGE = "ListPage"
    WORKSPACE = "WorkspaceTemplate"
    TABLE_OF_CONTENTS = "TableOfContents"


class ViewTemplate(str, Enum):
    NONE = "None"
    SUMMARY = "SummaryTemplate"
    LOOKUP = "LookupTemplate"


class FieldKind(str, Enum):
    STRING = "String"
    INTEGER = "Integer"
    REAL = "Real"
    DATE = "Date"
    DATETIME = "UtcDateTime"
    ENUM = "Enum"
    INT64 = "Int64"
    GUID = "Guid"
    CONTAINER = "Container"


# ------------------------------------------------------------
# Element types
# ------------------------------------------------------------
@dataclass
class TableField:
    name: str = ""
    kind: FieldKind = FieldKind.STRING
    extended_data_type: str = ""
    enum_type: str = ""
    label: str = ""
    mandatory: bool = False
    string_size: int = 0


@dataclass
class TableIndex:
    name: str = ""
    fields: List[str] = field(default_factory=list)
    allow_duplicates: bool = False
    alternate_key: bool = False


@dataclass
class ClassMethod:
    name: str = ""
    source: str = ""
    access: AccessLevel = AccessLevel.PUBLIC
    is_static: bool = False


@dataclass
class EnumValue:
    name: str = ""
    value: int = 0
    label: str = ""


@dataclass
class DataSource:
    name: str = ""
    table: str = ""
    allow_edit: bool = True


# ------------------------------------------------------------
# Record types
# ------------------------------------------------------------
@dataclass
class AxObject(ABC):
    name: str = ""

    @abstractmethod
    def primary_key(self) -> str:
        ...


@dataclass
class AxObjectBase(AxObject):
    label: str = ""
    description: str = ""

    def primary_key(self) -> str:
        return self.name


@dataclass
class AxClass(AxObjectBase):
    declaration: str = ""
    extends: str = ""
    is_abstract: bool = False
    is_final: bool = False
    access: AccessLevel = AccessLevel.PUBLIC
    methods: List[ClassMethod] = field(default_factory=list)

    def add_method(self, method: ClassMethod) -> None:
        self.methods.append(method)

    def remove_method(self, name: str) -> None:
        self.methods = [m for m in self.methods if m.name.lower() != name.lower()]

    def get_method(self, name: str) -> Optional[ClassMethod]:
        for m in self.methods:
            if m.name.lower() == name.lower():
                return m
        return None


@dataclass
class AxTable(AxObjectBase):
    table_group: TableGroup = TableGroup.MISCELLANEOUS
    table_type: TableType = TableType.REGULAR
    primary_index: str = ""
    cache_lookup: str = "None"
    save_data_per_company: bool = True
    fields: List[TableField] = field(default_factory=list)
    indexes: List[TableIndex] = field(default_factory=list)

    def add_field(self, table_field: TableField) -> None:
        self.fields.append(table_field)

    def add_index(self, index: TableIndex) -> None:
        self.indexes.append(index)

    def remove_field(self, name: str) -> None:
        self.fields = [f for f in self.fields if f.name.lower() != name.lower()]

    def find_field(self, name: str) -> Optional[TableField]:
        for f in self.fields:
            if f.name.lower() == name.lower():
                return f
        return None


@dataclass
class AxEnum(AxObjectBase):
    style: EnumStyle = EnumStyle.COMBO_BOX
    is_extensible: bool = True
    values: List[EnumValue] = field(default_factory=list)

    def add_value(self, value: EnumValue) -> None:
        self.values.append(value)


@dataclass
class AxForm(AxObjectBase):
    design_pattern: FormDesignPattern = FormDesignPattern.CUSTOM
    caption: str = ""
    data_sources: List[DataSource] = field(default_factory=list)

    def add_data_source(self, data_source: DataSource) -> None:
        self.data_sources.append(data_source)


@dataclass
class AxQuery(AxObjectBase):
    title: str = ""
    data_sources: List[DataSource] = field(default_factory=list)

    def add_data_source(self, data_source: DataSource) -> None:
        self.data_sources.append(data_source)


@dataclass
class AxView(AxObjectBase):
    query: str = ""
    view_template: ViewTemplate = ViewTemplate.NONE
    is_read_only: bool = True


@dataclass
class AxDataEntityView(AxView):
    public_entity_name: str = ""
    public_collection_name: str = ""
    is_public: bool = False
    data_management_enabled: bool = True


@dataclass
class AxEdtString(AxObjectBase):
    extends: str = ""
    string_size: int = 10
    help_text: str = ""


@dataclass
class AxMenuItemDisplay(AxObjectBase):
    target_object: str = ""
    open_mode: str = "Auto"
    needed_access_level: AccessLevel = AccessLevel.PUBLIC


@dataclass
class AxSecurityPrivilege(AxObjectBase):
    entry_points: List[str] = field(default_factory=list)
    enabled: bool = True
    valid_from: Optional[datetime] = None

    def add_entry_point(self, entry_point: str) -> None:
        self.entry_points.append(entry_point)


# ------------------------------------------------------------
# Infrastructure classes (never creatable)
# ------------------------------------------------------------
class AxTableFieldCollection(list):
    pass


class AxObjectHelper:
    @staticmethod
    def qualified_name(obj: AxObject) -> str:
        return f"{type(obj).__name__}:{obj.primary_key()}"
