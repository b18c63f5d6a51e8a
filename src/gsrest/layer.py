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

from gsrest.support import (
    Attribute,
    ResourceDescriptor,
    ResourceInfo,
    read_bool,
    read_name,
    read_text,
    register_attributes,
    write_bool,
    write_string,
)
from gsrest.workspace import Workspace, resolve_workspace


def layer_from_index(catalog, node, workspace=None):
    name = node.find("name").text
    if workspace is None and ":" in name:
        ws_name, name = name.split(":", 1)
        workspace = Workspace(catalog, ws_name, persisted=True)
    return Layer(catalog, name, workspace=workspace, persisted=True)


def _read_style_name(node):
    if node is None:
        return None
    name = read_text(node, "name")
    if not name:
        return None
    ws_name = read_text(node, "workspace")
    if ws_name and ":" not in name:
        return f"{ws_name}:{name}"
    return name


def _write_style_element(builder, name):
    ws, name = name.split(":") if ":" in name else (None, name)
    builder.start("name", dict())
    builder.data(name)
    builder.end("name")
    if ws:
        builder.start("workspace", dict())
        builder.data(ws)
        builder.end("workspace")


def _write_default_style(builder, name):
    builder.start("defaultStyle", dict())
    if name is not None and name:
        _write_style_element(builder, getattr(name, "fqn", name))
    builder.end("defaultStyle")


def _write_alternate_styles(builder, styles):
    builder.start("styles", dict())
    for s in styles:
        builder.start("style", dict())
        _write_style_element(builder, getattr(s, "fqn", s))
        builder.end("style")
    builder.end("styles")


@register_attributes(
    Attribute("enabled", "enabled", None),
    Attribute("advertised", "advertised", None),
    Attribute("default_style", "defaultStyle", None),
    Attribute("alternate_styles", "styles", []),
)
class Layer(ResourceInfo):
    """
    A published resource. Layers appear when a feature type or coverage is
    published, so they can be read, updated and deleted but not created.
    A layer named ``workspace:name``, or given a workspace, lives under
    ``workspaces/<workspace>/layers``. Styles are referred to by their
    qualified name (``workspace:name``) or by Style objects.
    """

    descriptor = ResourceDescriptor(
        route="layers",
        root="layers",
        resource_name="layer",
        create_method=None,
    )

    def __init__(self, catalog, name, workspace=None, persisted=False):
        if workspace is None and isinstance(name, string_types) and ":" in name:
            workspace, name = name.split(":", 1)
        super(Layer, self).__init__(catalog, name, persisted)
        self._workspace = resolve_workspace(catalog, workspace) if workspace else None

    @property
    def workspace(self):
        return self._workspace

    @property
    def fqn(self):
        if self.workspace is None:
            return self.name
        return f"{self.workspace.name}:{self.name}"

    @property
    def collection_route(self):
        if self.workspace is None:
            return self.descriptor.route
        return f"workspaces/{self.workspace.name}/{self.descriptor.route}"

    @property
    def type(self):
        return self.profile_value("type", "")

    def style_names(self):
        styles = [self.default_style] + list(self.alternate_styles)
        return [getattr(s, "fqn", s) for s in styles if s]

    def from_document(self, dom):
        return {
            "name": read_name(dom, self.href),
            "type": read_text(dom, "type"),
            "enabled": read_bool(dom.find("enabled")),
            "advertised": read_bool(dom.find("advertised")),
            "default_style": _read_style_name(dom.find("defaultStyle")),
            "alternate_styles": [
                n for n in (_read_style_name(s) for s in dom.findall("styles/style")) if n
            ],
        }

    def serialize(self, builder):
        write_string("name")(builder, self.name)
        self._write_enabled(builder)
        advertised = self._current("advertised")
        if self.advertised_changed() and advertised is not None:
            write_bool("advertised")(builder, advertised)
        if self.default_style_changed():
            _write_default_style(builder, self._current("default_style"))
        if self._writes_collection("alternate_styles"):
            _write_alternate_styles(builder, self._current("alternate_styles"))


class LayerQuery(object):
    """
    The layers of the catalog accepted by ``predicate``.

    Nothing is fetched until iteration starts and nothing is cached: every
    pass lists the layers again and reads the profile of each one, so a pass
    costs one request per layer. Iterating twice runs the query twice.
    """

    def __init__(self, catalog, predicate, workspace=None):
        self.catalog = catalog
        self.predicate = predicate
        self.workspace = workspace

    def __iter__(self):
        for layer in self.catalog.get_layers(workspace=self.workspace):
            if self.predicate(layer):
                yield layer
