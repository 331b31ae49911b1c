"""Catalog object model: schemas, tables, columns, routines and data types.

Objects compare by identity. Ownership is strict: a column belongs to one
table, a parameter to one routine. Relationships that cross tables
(foreign keys, synonyms) store NamedObjectKeys and are resolved through
the catalog rather than by holding the other object.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, TYPE_CHECKING

from catalog_crawler.crawl.keys import NamedObjectKey, routine_key, schema_key
from catalog_crawler.crawl.sql_types import UNKNOWN, SqlType
from catalog_crawler.crawl.type_map import DEFAULT_HOST_TYPE
from catalog_crawler.errors import DuplicateKeyError, FrozenCatalogError

if TYPE_CHECKING:
    from catalog_crawler.crawl.connection import Identifiers


def _dotted(*parts: Optional[str]) -> str:
    return ".".join(part for part in parts if part)


class _Freezable:
    """Owner objects refuse new children once their catalog is frozen."""

    _frozen: bool

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self, operation: str) -> None:
        if self._frozen:
            raise FrozenCatalogError(operation)


class DataTypeType(str, Enum):
    """Where a data type comes from."""
    SYSTEM = "system"
    USER_DEFINED = "user_defined"


class ForeignKeyRule(Enum):
    """Update/delete rule of a foreign key, by JDBC code."""
    CASCADE = 0
    RESTRICT = 1
    SET_NULL = 2
    NO_ACTION = 3
    SET_DEFAULT = 4
    UNKNOWN = -1

    @classmethod
    def from_code(cls, code: Optional[int]) -> "ForeignKeyRule":
        for rule in cls:
            if rule.value == code:
                return rule
        return cls.UNKNOWN


class ForeignKeyDeferrability(Enum):
    """Deferrability of a foreign key, by JDBC code."""
    INITIALLY_DEFERRED = 5
    INITIALLY_IMMEDIATE = 6
    NOT_DEFERRABLE = 7
    UNKNOWN = -1

    @classmethod
    def from_code(cls, code: Optional[int]) -> "ForeignKeyDeferrability":
        for deferrability in cls:
            if deferrability.value == code:
                return deferrability
        return cls.UNKNOWN


class RoutineType(str, Enum):
    PROCEDURE = "procedure"
    FUNCTION = "function"
    UNKNOWN = "unknown"


class ParameterMode(str, Enum):
    IN = "in"
    OUT = "out"
    INOUT = "inout"
    RETURN = "return"
    RESULT = "result"
    UNKNOWN = "unknown"


@dataclass(eq=False)
class Schema:
    """A schema, identified by catalog name and schema name.

    Either part can be None when the source does not model it.
    """
    catalog_name: Optional[str]
    name: Optional[str]
    remarks: Optional[str] = None

    @property
    def key(self) -> NamedObjectKey:
        return schema_key(self.catalog_name, self.name)

    @property
    def full_name(self) -> str:
        return _dotted(self.catalog_name, self.name)

    def __repr__(self) -> str:
        return f"Schema({self.full_name!r})"


@dataclass(eq=False)
class DataType:
    """A column or parameter data type.

    System types live in a catalog-wide pool and have no schema;
    user-defined types belong to a schema. Only the type registry creates
    instances, so each (schema, name) pair maps to exactly one object.
    """
    name: str
    schema: Optional[Schema] = None
    data_type_type: DataTypeType = DataTypeType.SYSTEM
    sql_type: SqlType = UNKNOWN
    host_type: str = DEFAULT_HOST_TYPE
    quoted_name: Optional[str] = None
    precision: Optional[int] = None
    literal_prefix: Optional[str] = None
    literal_suffix: Optional[str] = None
    create_parameters: Optional[str] = None
    nullable: bool = True
    case_sensitive: bool = False
    searchable: Optional[str] = None
    unsigned: bool = False
    fixed_precision_scale: bool = False
    auto_incrementable: bool = False
    minimum_scale: Optional[int] = None
    maximum_scale: Optional[int] = None
    num_precision_radix: Optional[int] = None
    base_type: Optional["DataType"] = field(default=None, repr=False)
    remarks: Optional[str] = None

    @property
    def key(self) -> NamedObjectKey:
        if self.schema is None:
            return NamedObjectKey(self.name)
        return self.schema.key.with_part(self.name)

    @property
    def is_user_defined(self) -> bool:
        return self.data_type_type == DataTypeType.USER_DEFINED

    @property
    def full_name(self) -> str:
        return self.quoted_name or self.name

    def with_quoting(self, identifiers: "Identifiers") -> "DataType":
        """Set the display name using the source's quoting rules.

        System type names are shown as the vendor spells them; user-defined
        types are schema-qualified and quoted where needed.
        """
        if self.schema is None or not self.is_user_defined:
            self.quoted_name = self.name
        else:
            self.quoted_name = identifiers.quote_full_name(
                self.schema.catalog_name, self.schema.name, self.name
            )
        return self


@dataclass(eq=False)
class Column:
    """A table column."""
    table: "Table" = field(repr=False)
    name: str
    ordinal_position: int = 0
    data_type: Optional[DataType] = None
    size: Optional[int] = None
    decimal_digits: Optional[int] = None
    nullable: bool = True
    default_value: Optional[str] = None
    remarks: Optional[str] = None
    auto_incremented: bool = False
    generated: bool = False
    hidden: bool = False
    is_part_of_primary_key: bool = False
    is_part_of_foreign_key: bool = False
    is_part_of_index: bool = False
    referenced_column_key: Optional[NamedObjectKey] = None

    @property
    def key(self) -> NamedObjectKey:
        return self.table.key.with_part(self.name)

    @property
    def full_name(self) -> str:
        return _dotted(self.table.full_name, self.name)


@dataclass(eq=False)
class PrimaryKey:
    """Primary key of a table, with columns in key sequence order."""
    table: "Table" = field(repr=False)
    name: Optional[str]
    columns: List[Column] = field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]


@dataclass(eq=False)
class ColumnReference:
    """One column pair of a foreign key, stored by key."""
    key_sequence: int
    foreign_key_column: NamedObjectKey
    primary_key_column: NamedObjectKey


@dataclass(eq=False)
class ForeignKey:
    """A foreign key owned by the referencing table.

    The referenced side is kept as keys. ``is_resolved`` is True once
    every referenced column exists in the catalog; a foreign key whose
    referenced table was excluded or never seen stays unresolved.
    """
    table: "Table" = field(repr=False)
    name: str
    referenced_table_key: NamedObjectKey
    column_references: List[ColumnReference] = field(default_factory=list)
    update_rule: ForeignKeyRule = ForeignKeyRule.UNKNOWN
    delete_rule: ForeignKeyRule = ForeignKeyRule.UNKNOWN
    deferrability: ForeignKeyDeferrability = ForeignKeyDeferrability.UNKNOWN
    is_resolved: bool = False

    @property
    def key(self) -> NamedObjectKey:
        return self.table.key.with_part(self.name)

    @property
    def full_name(self) -> str:
        return _dotted(self.table.full_name, self.name)

    def add_column_reference(self, reference: ColumnReference) -> None:
        for existing in self.column_references:
            if existing.foreign_key_column == reference.foreign_key_column and \
                    existing.primary_key_column == reference.primary_key_column:
                return
        self.column_references.append(reference)
        self.column_references.sort(key=lambda ref: ref.key_sequence)


@dataclass(eq=False)
class IndexColumn:
    """A column as used by an index."""
    column: Column
    index_ordinal_position: int
    sort_sequence: Optional[str] = None


@dataclass(eq=False)
class Index:
    """A table index."""
    table: "Table" = field(repr=False)
    name: str
    unique: bool = False
    index_type: str = "OTHER"
    columns: List[IndexColumn] = field(default_factory=list)
    remarks: Optional[str] = None

    @property
    def column_names(self) -> List[str]:
        return [index_column.column.name for index_column in self.columns]


@dataclass(eq=False)
class TableConstraint:
    """A check or unique constraint."""
    table: "Table" = field(repr=False)
    name: str
    constraint_type: str = "UNKNOWN"
    columns: List[Column] = field(default_factory=list)
    definition: Optional[str] = None
    deferrable: bool = False
    initially_deferred: bool = False


@dataclass(eq=False)
class Trigger:
    """A table trigger."""
    table: "Table" = field(repr=False)
    name: str
    event_manipulation_types: List[str] = field(default_factory=list)
    action_timing: Optional[str] = None
    action_orientation: Optional[str] = None
    action_condition: Optional[str] = None
    action_statement: Optional[str] = None
    action_order: int = 0


@dataclass(eq=False)
class Table(_Freezable):
    """A table; views are represented by the View subclass."""
    schema: Schema
    name: str
    table_type: str = "TABLE"
    remarks: Optional[str] = None
    row_count: Optional[int] = None
    primary_key: Optional[PrimaryKey] = None
    _columns: Dict[str, Column] = field(default_factory=dict, repr=False)
    _foreign_keys: Dict[str, ForeignKey] = field(default_factory=dict, repr=False)
    _indexes: Dict[str, Index] = field(default_factory=dict, repr=False)
    _constraints: Dict[str, TableConstraint] = field(default_factory=dict, repr=False)
    _triggers: Dict[str, Trigger] = field(default_factory=dict, repr=False)
    _frozen: bool = field(default=False, repr=False)

    @property
    def key(self) -> NamedObjectKey:
        return self.schema.key.with_part(self.name)

    @property
    def full_name(self) -> str:
        return _dotted(self.schema.full_name, self.name)

    @property
    def is_view(self) -> bool:
        return False

    @property
    def has_row_count(self) -> bool:
        return self.row_count is not None

    @property
    def columns(self) -> List[Column]:
        """Columns in ordinal order; ties keep retrieval order."""
        return sorted(self._columns.values(), key=lambda column: column.ordinal_position)

    @property
    def foreign_keys(self) -> List[ForeignKey]:
        return list(self._foreign_keys.values())

    @property
    def indexes(self) -> List[Index]:
        return list(self._indexes.values())

    @property
    def table_constraints(self) -> List[TableConstraint]:
        return list(self._constraints.values())

    @property
    def triggers(self) -> List[Trigger]:
        return list(self._triggers.values())

    def set_primary_key(self, primary_key: PrimaryKey) -> PrimaryKey:
        self._check_mutable("set primary key")
        if self.primary_key is not None:
            raise DuplicateKeyError("primary key", self.key)
        self.primary_key = primary_key
        for column in primary_key.columns:
            column.is_part_of_primary_key = True
        return primary_key

    def add_column(self, column: Column) -> Column:
        self._check_mutable("add column")
        if column.name in self._columns:
            raise DuplicateKeyError("column", column.key)
        self._columns[column.name] = column
        return column

    def lookup_column(self, name: str) -> Optional[Column]:
        return self._columns.get(name)

    def add_foreign_key(self, foreign_key: ForeignKey) -> ForeignKey:
        self._check_mutable("add foreign key")
        if foreign_key.name in self._foreign_keys:
            raise DuplicateKeyError("foreign key", foreign_key.key)
        self._foreign_keys[foreign_key.name] = foreign_key
        return foreign_key

    def lookup_foreign_key(self, name: str) -> Optional[ForeignKey]:
        return self._foreign_keys.get(name)

    def add_index(self, index: Index) -> Index:
        self._check_mutable("add index")
        if index.name in self._indexes:
            raise DuplicateKeyError("index", self.key.with_part(index.name))
        self._indexes[index.name] = index
        return index

    def lookup_index(self, name: str) -> Optional[Index]:
        return self._indexes.get(name)

    def add_table_constraint(self, constraint: TableConstraint) -> TableConstraint:
        self._check_mutable("add table constraint")
        if constraint.name in self._constraints:
            raise DuplicateKeyError("table constraint", self.key.with_part(constraint.name))
        self._constraints[constraint.name] = constraint
        return constraint

    def lookup_table_constraint(self, name: str) -> Optional[TableConstraint]:
        return self._constraints.get(name)

    def add_trigger(self, trigger: Trigger) -> Trigger:
        self._check_mutable("add trigger")
        if trigger.name in self._triggers:
            raise DuplicateKeyError("trigger", self.key.with_part(trigger.name))
        self._triggers[trigger.name] = trigger
        return trigger

    def lookup_trigger(self, name: str) -> Optional[Trigger]:
        return self._triggers.get(name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.full_name!r})"


@dataclass(eq=False, repr=False)
class View(Table):
    """A view, with its definition when the source exposes it."""
    table_type: str = "VIEW"
    definition: Optional[str] = None

    @property
    def is_view(self) -> bool:
        return True


@dataclass(eq=False)
class RoutineParameter:
    """A parameter (or return value) of a routine."""
    routine: "Routine" = field(repr=False)
    name: str
    ordinal_position: int = 0
    parameter_mode: ParameterMode = ParameterMode.UNKNOWN
    data_type: Optional[DataType] = None
    size: Optional[int] = None
    decimal_digits: Optional[int] = None
    nullable: bool = True
    remarks: Optional[str] = None

    @property
    def key(self) -> NamedObjectKey:
        return self.routine.key.with_part(self.name)


@dataclass(eq=False)
class Routine(_Freezable):
    """A stored procedure or function.

    The specific name tells overloads apart; it is part of the key.
    """
    schema: Schema
    name: str
    specific_name: Optional[str] = None
    routine_type: RoutineType = RoutineType.UNKNOWN
    return_type: str = "unknown"
    remarks: Optional[str] = None
    definition: Optional[str] = None
    _parameters: Dict[str, RoutineParameter] = field(default_factory=dict, repr=False)
    _frozen: bool = field(default=False, repr=False)

    def __post_init__(self):
        if not self.specific_name:
            self.specific_name = self.name

    @property
    def key(self) -> NamedObjectKey:
        return routine_key(self.schema.catalog_name, self.schema.name, self.name, self.specific_name)

    @property
    def full_name(self) -> str:
        return _dotted(self.schema.full_name, self.name)

    @property
    def parameters(self) -> List[RoutineParameter]:
        return sorted(self._parameters.values(), key=lambda parameter: parameter.ordinal_position)

    def add_parameter(self, parameter: RoutineParameter) -> RoutineParameter:
        self._check_mutable("add routine parameter")
        if parameter.name in self._parameters:
            raise DuplicateKeyError("routine parameter", parameter.key)
        self._parameters[parameter.name] = parameter
        return parameter

    def lookup_parameter(self, name: str) -> Optional[RoutineParameter]:
        return self._parameters.get(name)


@dataclass(eq=False)
class Synonym:
    """A synonym; the object it names is kept as a key and may dangle."""
    schema: Schema
    name: str
    referenced_object_key: NamedObjectKey
    remarks: Optional[str] = None

    @property
    def key(self) -> NamedObjectKey:
        return self.schema.key.with_part(self.name)

    @property
    def full_name(self) -> str:
        return _dotted(self.schema.full_name, self.name)
