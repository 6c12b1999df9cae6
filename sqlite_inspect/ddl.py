"""
Column names out of a CREATE TABLE statement.

This is not a SQL parser. sqlparse only tokenizes the statement (so that
parentheses and commas inside string literals or quoted names don't trip us
up), and the column list is then cut at its top level commas. Each piece is
either a column definition, whose first token is the column name, or a
table constraint, which is skipped.
"""
from __future__ import annotations
from dataclasses import dataclass

from sqlparse import lexer
from sqlparse import tokens as T

from sqlite_inspect.exceptions import FormatError

from typing import List, Optional, Tuple

TABLE_CONSTRAINT_KEYWORDS = {"CONSTRAINT", "PRIMARY", "UNIQUE", "CHECK", "FOREIGN"}

# Words that end the declared type of a column and start its constraints
COLUMN_CONSTRAINT_KEYWORDS = {
    "CONSTRAINT",
    "PRIMARY",
    "NOT",
    "NULL",
    "UNIQUE",
    "CHECK",
    "DEFAULT",
    "COLLATE",
    "REFERENCES",
    "GENERATED",
    "AS",
}


@dataclass(frozen=True)
class _Token:
    value: str
    depth: int  # 1 for tokens directly inside the column list

    @property
    def words(self) -> List[str]:
        # sqlparse lexes some keyword pairs such as NOT NULL as a single token
        return self.value.upper().split()

    @property
    def is_punctuation(self) -> bool:
        return self.value in ("(", ")", ",")

    @property
    def is_quoted(self) -> bool:
        return self.value[:1] in ("'", "\"", "`", "[")


@dataclass(frozen=True)
class ColumnList:
    columns: Tuple[str, ...]
    rowid_alias: Optional[int]
    without_rowid: bool
    generated: Tuple[Optional[str], ...]  # VIRTUAL or STORED, None for ordinary columns


def unquote_identifier(name: str) -> str:
    if len(name) >= 2:
        first, last = name[0], name[-1]
        if first == '"' and last == '"':
            return name[1:-1].replace('""', '"')
        if first == "`" and last == "`":
            return name[1:-1].replace("``", "`")
        if first == "'" and last == "'":
            return name[1:-1].replace("''", "'")
        if first == "[" and last == "]":
            return name[1:-1]
    return name


def parse_columns(sql: str) -> ColumnList:
    """
    Creation query will look like

    CREATE TABLE apples
    (
        id integer primary key autoincrement,
        name text,
        color text
    )

    and we want ["id", "name", "color"], plus which of them (if any) is an
    alias of the rowid.
    """
    definitions, trailing = _split_definitions(sql)

    columns = []
    declared_types = []
    generated = []
    rowid_alias = None
    primary_key_columns = None

    for definition in definitions:
        leading_words = definition[0].words
        if leading_words and leading_words[0] in TABLE_CONSTRAINT_KEYWORDS:
            if _is_primary_key_constraint(definition):
                primary_key_columns = _constraint_columns(definition)
            continue

        columns.append(unquote_identifier(definition[0].value))
        declared_type, constraint_words = _split_type(definition[1:])
        declared_types.append(declared_type)
        generated.append(_generated_kind(definition[1:]))

        if declared_type == "INTEGER" and _declares_primary_key(constraint_words):
            rowid_alias = len(columns) - 1

    if rowid_alias is None and primary_key_columns and len(primary_key_columns) == 1:
        lowered = [column.lower() for column in columns]
        name = primary_key_columns[0].lower()
        if name in lowered and declared_types[lowered.index(name)] == "INTEGER":
            rowid_alias = lowered.index(name)

    without_rowid = trailing[:2] == ["WITHOUT", "ROWID"]
    if without_rowid:
        rowid_alias = None

    return ColumnList(tuple(columns), rowid_alias, without_rowid, tuple(generated))


def _split_definitions(sql: str) -> Tuple[List[List[_Token]], List[str]]:
    """
    Returns the comma separated pieces of the first parenthesised list in the
    statement, and the upper cased words following that list.
    """
    definitions: List[List[_Token]] = []
    current: List[_Token] = []
    trailing: List[str] = []
    depth = 0
    list_closed = False

    for ttype, value in lexer.tokenize(sql):
        if ttype in T.Whitespace or ttype in T.Comment:
            continue

        if list_closed:
            trailing.extend(value.upper().split())
            continue

        if value == "(":
            depth += 1
            if depth > 1:
                current.append(_Token(value, depth - 1))
        elif value == ")":
            depth -= 1
            if depth == 0:
                definitions.append(current)
                list_closed = True
            elif depth > 0:
                current.append(_Token(value, depth))
        elif value == "," and depth == 1:
            definitions.append(current)
            current = []
        elif depth > 0:
            current.append(_Token(value, depth))

    if not list_closed:
        raise FormatError(f"Could not find a column list in {sql!r}")

    definitions = [definition for definition in definitions if definition]
    if not definitions:
        raise FormatError(f"Column list of {sql!r} is empty")

    return definitions, trailing


def _split_type(tokens: List[_Token]) -> Tuple[str, List[str]]:
    type_words = []
    constraint_words = []
    in_constraints = False

    for token in tokens:
        if token.depth > 1 or token.is_punctuation:
            if in_constraints:
                constraint_words.append(token.value)
            continue

        words = token.words
        if not in_constraints and words[0] in COLUMN_CONSTRAINT_KEYWORDS:
            in_constraints = True

        if in_constraints:
            constraint_words.extend(words)
        else:
            type_words.extend(words)

    return " ".join(type_words), constraint_words


def _declares_primary_key(constraint_words: List[str]) -> bool:
    for i, word in enumerate(constraint_words[:-1]):
        if word == "PRIMARY" and constraint_words[i + 1] == "KEY":
            # "INTEGER PRIMARY KEY DESC" is a quirk of SQLite that does not alias the rowid
            following = constraint_words[i + 2 : i + 3]
            return following != ["DESC"]
    return False


def _generated_kind(tokens: List[_Token]) -> Optional[str]:
    """
    "b INT GENERATED ALWAYS AS (a * 2) STORED" -> "STORED". GENERATED ALWAYS
    is optional and a bare AS (...) column is VIRTUAL.
    """
    words = [
        word
        for token in tokens
        if token.depth == 1 and not (token.is_punctuation or token.is_quoted)
        for word in token.words
    ]
    if "AS" not in words:
        return None
    return "STORED" if "STORED" in words[words.index("AS") :] else "VIRTUAL"


def _is_primary_key_constraint(definition: List[_Token]) -> bool:
    words = [word for token in definition if token.depth == 1 for word in token.words]
    return any(
        word == "PRIMARY" and following == "KEY"
        for word, following in zip(words, words[1:])
    )


def _constraint_columns(definition: List[_Token]) -> List[str]:
    # PRIMARY KEY (a, b): the names are the first token of every comma
    # separated piece one level down
    names = []
    expecting_name = True
    for token in definition:
        if token.depth != 2:
            continue
        if token.value == ",":
            expecting_name = True
        elif expecting_name and not token.is_punctuation:
            names.append(unquote_identifier(token.value))
            expecting_name = False
    return names
