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

import os
import logging
from collections import namedtuple
from copy import deepcopy
from types import MappingProxyType
from xml.etree.ElementTree import TreeBuilder, XML, tostring
from xml.parsers.expat import ExpatError
from tempfile import mkstemp
from zipfile import ZipFile
from urllib.parse import urljoin, quote, urlencode

from six import string_types

from gsrest.exceptions import (
    ConfigurationError,
    ConflictingDataError,
    FailedRequestError,
    NotFoundError,
    UnexpectedKindError,
)

logger = logging.getLogger("gsrest.support")

ATOM_NAMESPACE = "http://www.w3.org/2005/Atom"


def build_route(seg, query=None):
    """
    Create a route relative to the REST endpoint from a list of path
    segments and an optional dict of query parameters.
    """
    seg = (quote(s.strip("/")) for s in seg)
    if query is None or len(query) == 0:
        query_string = ""
    else:
        query_string = f"?{urlencode(query)}"
    return "/".join(seg) + query_string


def build_url(base, route):
    adjusted_base = f"{base.rstrip('/')}/"
    return urljoin(str(adjusted_base), str(route))


def parse_xml(content, route):
    try:
        if isinstance(content, string_types):
            content = content.encode("utf-8")
        return XML(content)
    except (ExpatError, SyntaxError) as e:
        msg = f"GeoServer gave non-XML response for [GET {route}]: {content!r}"
        raise FailedRequestError(msg) from e


def read_name(dom, route):
    node = dom.find("name")
    if node is None or not (node.text or "").strip():
        raise FailedRequestError(f"GeoServer response for [GET {route}] has no <name>")
    return node.text.strip()


def read_text(dom, path):
    return (dom.findtext(path) or "").strip()


def read_bool(node):
    if node is None:
        return None
    text = (node.text or "").strip()
    if text:
        return text == "true"
    else:
        return None


def string_list(node):
    if node is not None:
        return [n.text for n in node.findall("string") if n.text]
    return []


def key_value_pairs(node):
    if node is not None:
        return dict(
            (entry.attrib["key"], entry.text or "") for entry in node.findall("entry")
        )
    return {}


def bbox(node):
    box = dict(minx="", miny="", maxx="", maxy="", crs="")
    if node is not None:
        for k in box:
            box[k] = read_text(node, k)
    return box


def write_string(name):
    def write(builder, value):
        builder.start(name, dict())
        if value is not None and value:
            builder.data(value)
        builder.end(name)

    return write


def write_bool(name):
    def write(builder, b):
        builder.start(name, dict())
        builder.data("true" if b and b != "false" else "false")
        builder.end(name)

    return write


def write_string_list(name):
    def write(builder, words):
        builder.start(name, dict())
        if words:
            words = [w for w in words if len(w) > 0]
            for w in words:
                builder.start("string", dict())
                builder.data(w)
                builder.end("string")
        builder.end(name)

    return write


def write_dict(name):
    def write(builder, pairs):
        builder.start(name, dict())
        for k, v in pairs.items():
            builder.start("entry", dict(key=k))
            v = v if isinstance(v, string_types) else str(v)
            builder.data(v)
            builder.end("entry")
        builder.end(name)

    return write


def atom_link(node):
    if "href" in node.attrib:
        return node.attrib["href"]
    link = node.find(f"{{{ATOM_NAMESPACE}}}link")
    return link.get("href") if link is not None else None


def linked_names(catalog, node, element):
    """Names of the ``element`` entries listed behind the atom link found in
    ``node``. An unreachable listing yields an empty list."""
    if node is None:
        return []
    href = atom_link(node)
    if not href:
        return []
    dom = catalog.get_xml_or_none(href)
    if dom is None:
        logger.warning(f"Could not read {element} listing at {href}, assuming none")
        return []
    return [n.text.strip() for n in dom.findall(f"{element}/name") if n.text]


def prepare_upload_bundle(name, data):
    """GeoServer's REST API uses ZIP archives as containers for file formats such
    as Shapefile and WorldImage which include several 'boxcar' files alongside
    the main data.  In such archives, GeoServer assumes that all of the relevant
    files will have the same base name and appropriate extensions, and live in
    the root of the ZIP archive.  This method produces a zip file that matches
    these expectations, based on a basename, and a dict of extensions to paths or
    file-like objects. The client code is responsible for deleting the zip
    archive when it's done."""
    fd, path = mkstemp(suffix=".zip")
    zip_file = ZipFile(path, "w", allowZip64=True)
    for ext, stream in data.items():
        fname = f"{name}.{ext}"
        if isinstance(stream, string_types):
            zip_file.write(stream, fname)
        else:
            zip_file.writestr(fname, stream.read())
    zip_file.close()
    os.close(fd)
    return path


ResourceDescriptor = namedtuple(
    "ResourceDescriptor",
    ["route", "root", "resource_name", "create_method", "update_method", "content_type"],
    defaults=("POST", "PUT", "application/xml"),
)
ResourceDescriptor.__doc__ = """Static description of a resource kind.

route is a template relative to the REST endpoint naming the collection
(``workspaces/{workspace}/datastores``); members live at ``<route>/<name>``.
create_method is None for kinds GeoServer does not let us create directly.
"""

Attribute = namedtuple("Attribute", ["name", "key", "default"])


def _attribute_property(attr):
    def getter(self):
        return self._get_attribute(attr)

    def setter(self, value):
        self._set_attribute(attr, value)

    return property(getter, setter, doc=f"<{attr.key}>, defaults to {attr.default!r}")


def _changed_predicate(name):
    def changed(self):
        return self.tracker.is_changed(name)

    changed.__name__ = f"{name}_changed"
    return changed


def register_attributes(*attributes):
    """Class decorator installing a property and a ``<name>_changed()``
    predicate for every declared attribute."""

    def register(cls):
        table = list(cls.attribute_table)
        for attr in attributes:
            if attr.name in [a.name for a in table]:
                raise ConfigurationError(
                    f"{cls.__name__} declares the attribute '{attr.name}' twice")
            if hasattr(cls, attr.name) or hasattr(cls, f"{attr.name}_changed"):
                raise ConfigurationError(
                    f"{cls.__name__}.{attr.name} clashes with an existing member")
            table.append(attr)
            setattr(cls, attr.name, _attribute_property(attr))
            setattr(cls, f"{attr.name}_changed", _changed_predicate(attr.name))
        cls.attribute_table = tuple(table)
        return cls

    return register


class ChangeTracker(object):
    """Lifecycle and pending edits of one resource instance."""

    NEW = "NEW"
    CLEAN = "CLEAN"
    DIRTY = "DIRTY"

    def __init__(self, persisted=False):
        self.persisted = persisted
        self.retired = False
        self.dirty = set()

    @property
    def state(self):
        if not self.persisted:
            return self.NEW
        return self.DIRTY if self.dirty else self.CLEAN

    @property
    def is_new(self):
        return not self.persisted

    @property
    def is_dirty(self):
        return len(self.dirty) > 0

    def is_changed(self, name):
        return name in self.dirty

    def mark_dirty(self, name):
        self.dirty.add(name)

    def discard(self, name):
        self.dirty.discard(name)

    def reset(self):
        self.dirty.clear()
        self.persisted = True

    def retire(self):
        self.dirty.clear()
        self.retired = True


class ResourceInfo(object):
    """
    Base class of every configuration object living in the GeoServer catalog.

    Concrete kinds provide a ``descriptor``, register their attributes with
    ``register_attributes`` and implement the two halves of the document
    mapping: ``serialize`` (attributes to request document) and
    ``from_document`` (server document to profile mapping).

    Reading an attribute returns the locally assigned value if there is one,
    otherwise the value found in the profile, otherwise the declared default.
    The profile is fetched once and kept until it is cleared, refreshed, or a
    create/update/delete goes through.
    """

    descriptor = None
    attribute_table = ()

    def __init__(self, catalog, name, persisted=False):
        if not isinstance(name, string_types) or not name.strip():
            raise ValueError(f"Can't build a {self.resource_type} without a name, got {name!r}")
        self._catalog = catalog
        self._name = name.strip()
        self._values = dict()
        self._profile = None
        self._missing = False
        self.tracker = ChangeTracker(persisted)

    @property
    def catalog(self):
        return self._catalog

    @property
    def name(self):
        return self._name

    @property
    def resource_type(self):
        return self.descriptor.resource_name

    @property
    def is_new(self):
        return self.tracker.is_new

    @property
    def is_dirty(self):
        return self.tracker.is_dirty

    @property
    def persisted(self):
        return self.tracker.persisted

    def route_params(self):
        return dict()

    @property
    def collection_route(self):
        return self.descriptor.route.format(**self.route_params())

    @property
    def href(self):
        return build_route([self.collection_route, self.name])

    @property
    def create_href(self):
        return build_route([self.collection_route])

    @property
    def content_type(self):
        return self.descriptor.content_type

    def profile_value(self, key, default=None):
        """Value of ``key`` in the profile. A new resource that is not on the
        server yet reads as ``default``."""
        try:
            profile = self.profile
        except NotFoundError:
            if self.tracker.is_new:
                return deepcopy(default)
            raise
        return deepcopy(profile.get(key, default))

    def _get_attribute(self, attr):
        if attr.name in self._values:
            return self._values[attr.name]
        return self.profile_value(attr.name, attr.default)

    def _set_attribute(self, attr, value):
        self._values[attr.name] = value
        if self.tracker.is_new or self._profile is None:
            self.tracker.mark_dirty(attr.name)
        elif self._profile.get(attr.name, attr.default) == value:
            self.tracker.discard(attr.name)
        else:
            self.tracker.mark_dirty(attr.name)

    def _current(self, name):
        """Value to serialize for ``name``; never touches the network."""
        if name in self._values:
            return self._values[name]
        if self._profile is not None and name in self._profile:
            return self._profile[name]
        for attr in self.attribute_table:
            if attr.name == name:
                return deepcopy(attr.default)
        raise KeyError(name)

    def _should_write(self, name):
        return self.tracker.is_new or self.tracker.is_changed(name)

    def _writes_collection(self, name):
        """
        Whether the collection ``name`` goes into the document. An empty
        collection is left out of a create; on an update a collection
        emptied by the client is sent as an empty container so the server
        drops its entries.
        """
        if self.tracker.is_new:
            return bool(self._current(name))
        return self.tracker.is_changed(name)

    def _write_text(self, builder, name, key):
        value = self._current(name)
        if self.tracker.is_changed(name) or (self.tracker.is_new and value):
            write_string(key)(builder, value)

    def _write_enabled(self, builder):
        enabled = self._current("enabled")
        if self.tracker.is_new:
            if enabled is None:
                # GeoServer disables a resource created without <enabled>
                enabled = True
        elif not self.tracker.is_changed("enabled"):
            return
        if enabled is not None:
            write_bool("enabled")(builder, enabled)

    @property
    def profile(self):
        if self._profile is None:
            if self._missing:
                raise NotFoundError(f"Failed to fetch {self.resource_type} {self.name} : 404, not found")
            try:
                self._profile = MappingProxyType(self.fetch())
            except NotFoundError:
                self._missing = self.tracker.is_new
                raise
        return self._profile

    def fetch(self):
        status, body = self.catalog.get(self.href)
        self._check_response("fetch", status, body)
        return self.from_document(parse_xml(body, self.href))

    def clear(self):
        self._profile = None
        self._missing = False

    def refresh(self):
        self.clear()
        return self.profile

    def exists(self):
        status, body = self.catalog.get(self.href)
        if 200 <= status < 300:
            return True
        if 400 <= status < 500:
            return False
        raise FailedRequestError(
            f"Failed to check whether {self.resource_type} {self.name} exists : {status}, {_text(body)}")

    def _check_response(self, operation, status, body):
        if 200 <= status < 300:
            return
        msg = f"Failed to {operation} {self.resource_type} {self.name} : {status}, {_text(body)}"
        if status == 404:
            raise NotFoundError(msg)
        if status == 409:
            raise ConflictingDataError(msg)
        raise FailedRequestError(msg)

    def save(self):
        """
        Create the resource when it is new, update it when it has pending
        changes. Returns False when there was nothing to send.
        """
        if self.tracker.retired:
            raise NotFoundError(f"Failed to save {self.resource_type} {self.name} : it has been deleted")
        if self.tracker.is_new:
            self._create()
        elif not self.tracker.is_dirty:
            logger.debug(f"{self.resource_type} {self.name} has no pending changes")
            return False
        else:
            self._send("update", self.descriptor.update_method, self.href)
        self.tracker.reset()
        self._values.clear()
        self.clear()
        return True

    def _create(self):
        method = self.descriptor.create_method
        if method is None:
            raise UnexpectedKindError(
                f"Failed to create {self.resource_type} {self.name} : "
                f"{self.resource_type} resources can not be created through the REST API")
        if self.exists():
            raise ConflictingDataError(
                f"The {self.resource_type} {self.name} already exists and can not be replaced")
        self._send("create", method, self.create_href)

    def _send(self, operation, method, route):
        logger.debug(f"{method} {route}")
        request = getattr(self.catalog, method.lower())
        status, body = request(route, self.message(), self.content_type)
        self._check_response(operation, status, body)

    def delete(self, purge=None, recurse=False):
        params = dict()
        # purge deletes the SLD from disk when a style is deleted
        if purge:
            params["purge"] = str(purge)
        # recurse deletes dependent resources along with this one
        if recurse:
            params["recurse"] = "true"
        logger.debug(f"DELETE {self.href}")
        status = self.catalog.delete(self.href, params or None)
        self._check_response("delete", status, None)
        self.tracker.retire()
        self._values.clear()
        self.clear()

    def serialize(self, builder):
        raise NotImplementedError

    def from_document(self, dom):
        raise NotImplementedError

    def message(self):
        builder = TreeBuilder()
        builder.start(self.resource_type, dict())
        self.serialize(builder)
        builder.end(self.resource_type)
        return tostring(builder.close())

    def __repr__(self):
        return f"{self.resource_type} {self.name} @ {self.href}"


def _text(body):
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", "replace")
    return body
