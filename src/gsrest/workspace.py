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
from gsrest.support import (
    Attribute,
    ResourceDescriptor,
    ResourceInfo,
    read_bool,
    read_name,
    register_attributes,
    write_bool,
    write_string,
)


def workspace_from_index(catalog, node):
    name = node.find("name")
    return Workspace(catalog, name.text, persisted=True)


def resolve_workspace(catalog, workspace):
    """Turn a workspace reference into a Workspace object.

    None stands for the server's default workspace, a string is looked up by
    name, and a Workspace is used as is.
    """
    if workspace is None:
        return catalog.get_default_workspace()
    if isinstance(workspace, Workspace):
        return workspace
    if isinstance(workspace, string_types):
        return catalog.get_workspace(workspace)
    raise InvalidParentError(f"Not a valid workspace: {workspace!r}")


@register_attributes(
    Attribute("isolated", "isolated", None),
)
class Workspace(ResourceInfo):
    descriptor = ResourceDescriptor(
        route="workspaces",
        root="workspaces",
        resource_name="workspace",
    )

    def from_document(self, dom):
        return {
            "name": read_name(dom, self.href),
            "isolated": read_bool(dom.find("isolated")),
        }

    def serialize(self, builder):
        write_string("name")(builder, self.name)
        isolated = self._current("isolated")
        if self._should_write("isolated") and isolated is not None:
            write_bool("isolated")(builder, isolated)
