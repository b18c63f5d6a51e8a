# -*- coding: utf-8 -*-
#########################################################################
#
# Copyright 2019, GeoSolutions Sas.
# All rights reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE.txt file in the root directory of this source tree.
#
#########################################################################
from six import string_types

from gsrest.exceptions import InvalidParentError
from gsrest.store import CoverageStore
from gsrest.support import (
    Attribute,
    ResourceDescriptor,
    ResourceInfo,
    bbox,
    key_value_pairs,
    read_bool,
    read_name,
    read_text,
    register_attributes,
    string_list,
    write_dict,
    write_string,
)
from gsrest.workspace import resolve_workspace

# see http://inspire.ec.europa.eu/schemas/common/1.0/common.xsd
METADATA_TYPES = {
    "ISO19139": "application/vnd.iso.19139+xml",
    "TC211": "application/vnd.iso.19139+xml",
}


def coverage_from_index(catalog, workspace, store, node):
    name = node.find("name")
    return Coverage(catalog, workspace, store, name.text, persisted=True)


def resolve_coverage_store(catalog, workspace, coverage_store):
    if isinstance(coverage_store, CoverageStore):
        return coverage_store
    if isinstance(coverage_store, string_types):
        return catalog.get_coverage_store(coverage_store, workspace)
    raise InvalidParentError(f"Not a valid coverage store: {coverage_store!r}")


def to_mimetype(metadata_type, default="text/xml"):
    return METADATA_TYPES.get((metadata_type or "").upper(), default)


def format_keyword(keyword):
    """Keywords may carry a language and a vocabulary, which GeoServer
    encodes inline, e.g. United States\\@language=en\\;\\@vocabulary=ISOTC211/19115:place\\;"""
    if not isinstance(keyword, dict):
        return keyword
    text = keyword["keyword"]
    if keyword.get("language"):
        text += f"\\@language={keyword['language']}\\;"
    if keyword.get("vocabulary"):
        text += f"\\@vocabulary={keyword['vocabulary']}\\;"
    return text


def parse_keyword(text):
    if "\\@" not in text:
        return text
    word, _, rest = text.partition("\\@")
    keyword = dict(keyword=word)
    for part in ("\\@" + rest).split("\\;"):
        if part.startswith("\\@") and "=" in part:
            k, v = part[2:].split("=", 1)
            keyword[k] = v
    return keyword


def _read_metadata_link(node):
    return {
        "type": read_text(node, "type"),
        "metadataType": read_text(node, "metadataType"),
        "content": read_text(node, "content"),
    }


def _write_keywords(builder, keywords):
    builder.start("keywords", dict())
    for k in keywords:
        builder.start("string", dict())
        builder.data(format_keyword(k))
        builder.end("string")
    builder.end("keywords")


def _write_metadata_links(builder, links):
    builder.start("metadataLinks", dict())
    for link in links:
        builder.start("metadataLink", dict())
        metadata_type = link.get("metadataType")
        write_string("type")(builder, link.get("type") or to_mimetype(metadata_type))
        write_string("metadataType")(builder, metadata_type)
        write_string("content")(builder, link.get("content"))
        builder.end("metadataLink")
    builder.end("metadataLinks")


@register_attributes(
    Attribute("title", "title", None),
    Attribute("abstract", "abstract", None),
    Attribute("enabled", "enabled", None),
    Attribute("keywords", "keywords", []),
    Attribute("metadata", "metadata", {}),
    Attribute("metadata_links", "metadataLinks", []),
)
class Coverage(ResourceInfo):
    """A raster data set published out of a coverage store."""

    descriptor = ResourceDescriptor(
        route="workspaces/{workspace}/coveragestores/{coverage_store}/coverages",
        root="coverages",
        resource_name="coverage",
    )

    def __init__(self, catalog, workspace, coverage_store, name, enabled=None, persisted=False):
        super(Coverage, self).__init__(catalog, name, persisted)
        if workspace is None and isinstance(coverage_store, CoverageStore):
            workspace = coverage_store.workspace
        self._workspace = resolve_workspace(catalog, workspace)
        self._coverage_store = resolve_coverage_store(catalog, self._workspace, coverage_store)
        if enabled is not None:
            self.enabled = enabled

    @property
    def workspace(self):
        return self._workspace

    @property
    def coverage_store(self):
        return self._coverage_store

    def route_params(self):
        return dict(workspace=self.workspace.name, coverage_store=self.coverage_store.name)

    @property
    def native_name(self):
        return self.profile_value("native_name", "")

    @property
    def native_crs(self):
        return self.profile_value("native_crs", "")

    @property
    def srs(self):
        return self.profile_value("srs", "")

    @property
    def native_bbox(self):
        return self.profile_value("native_bbox", bbox(None))

    @property
    def latlon_bbox(self):
        return self.profile_value("latlon_bbox", bbox(None))

    @property
    def supported_formats(self):
        return self.profile_value("supported_formats", [])

    def from_document(self, dom):
        return {
            "name": read_name(dom, self.href),
            "native_name": read_text(dom, "nativeName"),
            "native_crs": read_text(dom, "nativeCRS"),
            "srs": read_text(dom, "srs"),
            "title": read_text(dom, "title"),
            "abstract": read_text(dom, "abstract"),
            "enabled": read_bool(dom.find("enabled")),
            "native_bbox": bbox(dom.find("nativeBoundingBox")),
            "latlon_bbox": bbox(dom.find("latLonBoundingBox")),
            "supported_formats": string_list(dom.find("supportedFormats")),
            "keywords": [parse_keyword(k) for k in string_list(dom.find("keywords"))],
            "metadata": key_value_pairs(dom.find("metadata")),
            "metadata_links": [_read_metadata_link(n) for n in dom.findall("metadataLinks/metadataLink")],
        }

    def serialize(self, builder):
        write_string("name")(builder, self.name)
        if self.tracker.is_new:
            write_string("nativeName")(builder, self.name)
        self._write_text(builder, "title", "title")
        self._write_text(builder, "abstract", "abstract")
        self._write_enabled(builder)

        if self._writes_collection("keywords"):
            _write_keywords(builder, self._current("keywords"))
        if self._writes_collection("metadata"):
            write_dict("metadata")(builder, self._current("metadata"))
        if self._writes_collection("metadata_links"):
            _write_metadata_links(builder, self._current("metadata_links"))
