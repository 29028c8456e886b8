"""
Webgraph record schema and the field selection policy.

Every attribute an edge record can carry is a member of WebgraphSchema. Which of
them are actually materialized, and under which storage name, is decided by a
FieldSelectionPolicy loaded once from a schema file:

    # comment
    id
    source_id
    target_linktext = anchor_text

A bare name enables the field under its default alias; "name = alias" enables it
under a custom alias. Without a file (or with an empty one) every field is
selected.
"""

import logging
import os
from enum import Enum
from types import MappingProxyType


class WebgraphSchema(str, Enum):
    # identity
    id = "id"
    source_id = "source_id"
    target_id = "target_id"

    # bookkeeping
    load_date = "load_date"
    last_modified = "last_modified"
    collection = "collection"
    process = "process"

    # source endpoint
    source_protocol = "source_protocol"
    source_urlstub = "source_urlstub"
    source_chars = "source_chars"
    source_host = "source_host"
    source_host_id = "source_host_id"
    source_host_dnc = "source_host_dnc"
    source_host_organization = "source_host_organization"
    source_host_organizationdnc = "source_host_organizationdnc"
    source_host_subdomain = "source_host_subdomain"
    source_file_ext = "source_file_ext"
    source_path = "source_path"
    source_path_folders_count = "source_path_folders_count"
    source_path_folders = "source_path_folders"
    source_parameter_count = "source_parameter_count"
    source_parameter_key = "source_parameter_key"
    source_parameter_value = "source_parameter_value"
    source_clickdepth = "source_clickdepth"

    # link
    target_inbound = "target_inbound"
    target_name = "target_name"
    target_rel = "target_rel"
    target_relflags = "target_relflags"
    target_linktext = "target_linktext"
    target_linktext_charcount = "target_linktext_charcount"
    target_linktext_wordcount = "target_linktext_wordcount"
    target_alt = "target_alt"
    target_alt_charcount = "target_alt_charcount"
    target_alt_wordcount = "target_alt_wordcount"

    # target endpoint
    target_protocol = "target_protocol"
    target_urlstub = "target_urlstub"
    target_chars = "target_chars"
    target_host = "target_host"
    target_host_id = "target_host_id"
    target_host_dnc = "target_host_dnc"
    target_host_organization = "target_host_organization"
    target_host_organizationdnc = "target_host_organizationdnc"
    target_host_subdomain = "target_host_subdomain"
    target_file_ext = "target_file_ext"
    target_path = "target_path"
    target_path_folders_count = "target_path_folders_count"
    target_path_folders = "target_path_folders"
    target_parameter_count = "target_parameter_count"
    target_parameter_key = "target_parameter_key"
    target_parameter_value = "target_parameter_value"
    target_clickdepth = "target_clickdepth"


def _is_empty(value) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (str, list, tuple, set, frozenset, dict)):
        return len(value) == 0
    if isinstance(value, int):
        return value == 0
    return False


def _default_owner(alias):
    """The field whose default storage name is alias, if any."""
    try:
        return WebgraphSchema(alias)
    except ValueError:
        return None


class FieldSelectionPolicy:
    def __init__(self, entries=None, lazy=False):
        """
        entries: mapping of WebgraphSchema member (or its name) to storage alias.
        An empty or missing mapping selects every field under its default alias.
        lazy: skip empty values on ordinary writes.
        """
        table = {}
        owners = {}
        for key, alias in (entries or {}).items():
            f = WebgraphSchema(key)
            alias = alias or f.value
            owner = owners.get(alias) or _default_owner(alias)
            if owner is not None and owner is not f:
                logging.warning("alias '%s' of '%s' clashes with '%s'; dropping '%s'", alias, f.name, owner.name, f.name)
                continue
            table[f] = alias
            owners[alias] = f
        self._entries = MappingProxyType(table)
        aliases = {f: f.value for f in WebgraphSchema}
        aliases.update(table)
        self._aliases = MappingProxyType(aliases)
        self._fields_by_alias = MappingProxyType({a: f for f, a in aliases.items()})
        self._lazy = lazy

    @property
    def lazy(self) -> bool:
        return self._lazy

    @classmethod
    def load(cls, path, lazy=False) -> "FieldSelectionPolicy":
        if not path or not os.path.exists(path):
            return cls(lazy=lazy)
        entries = {}
        with open(path, "r", encoding="utf-8") as f:
            for lineno, raw in enumerate(f, 1):
                line = raw.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" in line:
                    name, alias = (x.strip() for x in line.split("=", 1))
                else:
                    name, alias = line, ""
                try:
                    fld = WebgraphSchema[name]
                except KeyError:
                    logging.warning("schema file %s defines unknown attribute '%s' (line %d)", path, name, lineno)
                    continue
                entries[fld] = alias or fld.value
        if entries:
            for fld in WebgraphSchema:
                if fld not in entries:
                    logging.warning("schema file %s is missing declaration for '%s'", path, fld.name)
        return cls(entries, lazy=lazy)

    def save(self, path):
        """Write the configured fields back. Failures are logged and otherwise ignored."""
        try:
            with open(path, "w", encoding="utf-8") as f:
                for fld, alias in self._entries.items():
                    f.write(fld.name if alias == fld.value else f"{fld.name} = {alias}")
                    f.write("\n")
        except OSError:
            logging.debug("Failed to save schema file %s", path, exc_info=True)

    def is_select_all(self) -> bool:
        return not self._entries

    def is_enabled(self, field) -> bool:
        return WebgraphSchema(field) in self._entries

    def selects(self, field) -> bool:
        return self.is_select_all() or self.is_enabled(field)

    def alias(self, field) -> str:
        return self._aliases[WebgraphSchema(field)]

    def field_for_alias(self, alias):
        return self._fields_by_alias.get(alias)

    def selected_fields(self):
        return [f for f in WebgraphSchema if self.selects(f)]

    def write(self, record, field, value, force=False):
        if not force:
            if not self.selects(field):
                return
            if self._lazy and _is_empty(value):
                return
        record[self.alias(field)] = value

    def to_input_document(self, doc) -> dict:
        """Copy of a stored document restricted to the fields selected now."""
        out = {}
        for alias, value in doc.items():
            f = self.field_for_alias(alias)
            if f is not None and self.selects(f):
                out[alias] = value
        return out
