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

import logging

from six import string_types

from gsrest.exceptions import UnexpectedKindError
from gsrest.layer import LayerQuery
from gsrest.support import (
    Attribute,
    ResourceDescriptor,
    ResourceInfo,
    build_route,
    parse_xml,
    read_name,
    read_text,
    register_attributes,
    write_string,
)
from gsrest.workspace import resolve_workspace

logger = logging.getLogger("gsrest.style")


def style_from_index(catalog, workspace, node):
    name = node.find("name")
    return Style(catalog, name.text, workspace=workspace, persisted=True)


@register_attributes(
    Attribute("sld_version", "sldVersion", None),
    Attribute("filename", "filename", None),
    Attribute("sld_doc", "sld_doc", None),
)
class Style(ResourceInfo):
    """
    A style, global or scoped to a workspace.

    The style body travels on its own: creating a style, or saving a changed
    ``sld_doc``, sends the body with the content type of ``style_format``;
    other edits send the XML style description, as a second request when
    the body is sent too.
    """

    supported_formats = ["sld10", "sld11", "zip10", "css10"]
    content_types = {
        "sld10": "application/vnd.ogc.sld+xml",
        "sld11": "application/vnd.ogc.se+xml",
        "zip10": "application/zip",
        "css10": "application/vnd.geoserver.geocss+css",
    }
    descriptor = ResourceDescriptor(
        route="styles",
        root="styles",
        resource_name="style",
    )

    def __init__(self, catalog, name, workspace=None, style_format="sld10", persisted=False):
        if style_format not in Style.supported_formats:
            raise UnexpectedKindError(
                f"The style {name} can not use the format '{style_format}', "
                f"expected one of {Style.supported_formats}")
        super(Style, self).__init__(catalog, name, persisted)
        self._workspace = resolve_workspace(catalog, workspace) if workspace else None
        self.style_format = style_format

    @property
    def workspace(self):
        return self._workspace

    @property
    def fqn(self):
        if not self.workspace:
            return self.name
        return f'{self.workspace.name}:{self.name}'

    @property
    def collection_route(self):
        if self.workspace is None:
            return self.descriptor.route
        return f"workspaces/{self.workspace.name}/{self.descriptor.route}"

    @property
    def create_href(self):
        return build_route([self.collection_route], dict(name=self.name))

    @property
    def body_href(self):
        return build_route([self.collection_route, f"{self.name}.sld"])

    def _sends_body(self):
        return self.tracker.is_new or self.sld_doc_changed()

    @property
    def content_type(self):
        if self._sends_body():
            return Style.content_types[self.style_format]
        return self.descriptor.content_type

    def from_document(self, dom):
        body = self.catalog.get_or_none(self.body_href)
        if body is None:
            logger.warning(f"Could not read the body of style {self.fqn} at {self.body_href}")
        elif not isinstance(body, string_types):
            body = body.decode("utf-8")
        return {
            "name": read_name(dom, self.href),
            "sld_version": read_text(dom, "sldVersion/version"),
            "filename": read_text(dom, "filename"),
            "format": read_text(dom, "format"),
            "sld_doc": body,
        }

    def serialize(self, builder):
        write_string("name")(builder, self.name)
        self._write_text(builder, "filename", "filename")
        version = self._current("sld_version")
        if self.sld_version_changed() and version:
            builder.start("sldVersion", dict())
            write_string("version")(builder, version)
            builder.end("sldVersion")

    def _send(self, operation, method, route):
        body_sent = self._sends_body()
        super(Style, self)._send(operation, method, route)
        if body_sent:
            # the body request does not carry filename or sldVersion
            self.tracker.persisted = True
            self.tracker.discard("sld_doc")
            self.clear()
            if self.tracker.is_dirty:
                super(Style, self)._send("update", self.descriptor.update_method, self.href)

    def message(self):
        if not self._sends_body():
            return super(Style, self).message()
        body = self._current("sld_doc")
        if not body:
            raise ValueError(f"Style {self.fqn} has no body to send")
        if isinstance(body, string_types):
            body = body.encode("utf-8")
        return body

    def _sld_dom(self):
        body = self.sld_doc
        if not body:
            return None
        return parse_xml(body, self.body_href)

    def _find_sld_text(self, *paths):
        dom = self._sld_dom()
        if dom is None:
            return None
        for path in paths:
            node = dom.find(path)
            if node is not None and node.text:
                return node.text.strip()
        return None

    @property
    def sld_name(self):
        return self._find_sld_text(
            "{*}NamedLayer/{*}Name",
            "{*}NamedLayer/{*}UserStyle/{*}Name",
            "{*}UserLayer/{*}UserStyle/{*}Name",
        )

    @property
    def sld_title(self):
        return self._find_sld_text(
            "{*}NamedLayer/{*}UserStyle/{*}Title",
            "{*}UserLayer/{*}UserStyle/{*}Title",
        )

    def layers(self, workspace=None):
        """Layers using this style as default or alternate style."""
        return LayerQuery(self.catalog, lambda layer: self.fqn in layer.style_names(), workspace)
