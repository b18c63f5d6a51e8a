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
import re
import logging

from gsrest.exceptions import ConflictingDataError, UnexpectedKindError
from gsrest.support import (
    Attribute,
    ResourceDescriptor,
    ResourceInfo,
    build_route,
    key_value_pairs,
    linked_names,
    prepare_upload_bundle,
    read_bool,
    read_name,
    read_text,
    register_attributes,
    write_dict,
    write_string,
)
from gsrest.workspace import resolve_workspace

logger = logging.getLogger("gsrest.store")


def datastore_from_index(catalog, workspace, node):
    name = node.find("name")
    return DataStore(catalog, workspace, name.text, persisted=True)


def coveragestore_from_index(catalog, workspace, node):
    name = node.find("name")
    return CoverageStore(catalog, workspace, name.text, persisted=True)


class _Store(ResourceInfo):
    """Shared plumbing of the stores living inside a workspace."""

    def __init__(self, catalog, workspace, name, persisted=False):
        super(_Store, self).__init__(catalog, name, persisted)
        self._workspace = resolve_workspace(catalog, workspace)

    @property
    def workspace(self):
        return self._workspace

    def route_params(self):
        return dict(workspace=self.workspace.name)

    def _write_common(self, builder):
        write_string("name")(builder, self.name)
        self._write_enabled(builder)
        self._write_text(builder, "description", "description")
        if self._should_write("data_type"):
            write_string("type")(builder, self._current("data_type"))


@register_attributes(
    Attribute("description", "description", None),
    Attribute("enabled", "enabled", None),
    Attribute("data_type", "type", "Shapefile"),
    Attribute("connection_parameters", "connectionParameters", {}),
)
class DataStore(_Store):
    """
    A source of vector data: a shapefile, a database such as PostGIS, or a
    remote Web Feature Service.
    """

    descriptor = ResourceDescriptor(
        route="workspaces/{workspace}/datastores",
        root="dataStores",
        resource_name="dataStore",
    )
    upload_types = {"shapefile": "file.shp"}

    @property
    def feature_types(self):
        return self.profile_value("feature_types", [])

    def from_document(self, dom):
        return {
            "name": read_name(dom, self.href),
            "description": read_text(dom, "description"),
            "enabled": read_bool(dom.find("enabled")),
            "data_type": read_text(dom, "type"),
            "connection_parameters": key_value_pairs(dom.find("connectionParameters")),
            "feature_types": linked_names(self.catalog, dom.find("featureTypes"), "featureType"),
        }

    def serialize(self, builder):
        self._write_common(builder)
        if self._writes_collection("connection_parameters"):
            params = self._current("connection_parameters")
            # an empty <connectionParameters/> is rejected by GeoServer
            if not params:
                raise ValueError(
                    f"The connection parameters of {self.resource_type} {self.name} can not be emptied")
            write_dict("connectionParameters")(builder, params)

    def upload_file(self, data, data_type="shapefile", charset=None):
        """
        Create this store by uploading a file. ``data`` is either the path of
        a zip archive or a dict of extensions to paths, which is bundled
        with prepare_upload_bundle.
        """
        if not self.tracker.is_new or self.exists():
            raise ConflictingDataError(
                f"The {self.resource_type} {self.name} already exists and can not be replaced")
        if data_type not in self.upload_types:
            raise UnexpectedKindError(
                f"The {self.resource_type} {self.name} does not accept the data type '{data_type}'")

        if isinstance(data, dict):
            logger.debug('Data is NOT a zipfile')
            archive = prepare_upload_bundle(self.name, data)
        else:
            logger.debug('Data is a zipfile')
            archive = data

        query = dict(charset=charset) if charset else None
        route = build_route([self.collection_route, self.name, self.upload_types[data_type]], query)
        logger.debug(f"PUT {route}")
        try:
            with open(archive, "rb") as file_obj:
                status, body = self.catalog.put(route, file_obj.read(), "application/zip")
        finally:
            if archive is not data:
                os.remove(archive)
        self._check_response("upload", status, body)

        self.tracker.reset()
        self._values.clear()
        self.clear()

        params = self.connection_parameters
        url = params.get("url")
        if url:
            # point GeoServer at the data dir relative location
            params["url"] = "file:data" + re.sub(r"^.*data", "", url)
            self.connection_parameters = params
            self.save()
        return self


@register_attributes(
    Attribute("description", "description", None),
    Attribute("enabled", "enabled", None),
    Attribute("data_type", "type", "GeoTIFF"),
    Attribute("url", "url", None),
)
class CoverageStore(_Store):
    """A source of raster data, parent of one or more coverages."""

    descriptor = ResourceDescriptor(
        route="workspaces/{workspace}/coveragestores",
        root="coverageStores",
        resource_name="coverageStore",
    )

    @property
    def coverages(self):
        return self.profile_value("coverages", [])

    def from_document(self, dom):
        return {
            "name": read_name(dom, self.href),
            "description": read_text(dom, "description"),
            "enabled": read_bool(dom.find("enabled")),
            "data_type": read_text(dom, "type"),
            "url": read_text(dom, "url"),
            "coverages": linked_names(self.catalog, dom.find("coverages"), "coverage"),
        }

    def serialize(self, builder):
        self._write_common(builder)
        self._write_text(builder, "url", "url")
