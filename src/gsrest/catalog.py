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
import base64
import logging
from urllib.parse import urlparse, urlencode, parse_qsl

import requests
from requests.packages.urllib3.util.retry import Retry
from requests.adapters import HTTPAdapter
from six import string_types

from gsrest.exceptions import FailedRequestError, NotFoundError
from gsrest.layer import Layer, layer_from_index
from gsrest.resource import Coverage
from gsrest.store import (
    CoverageStore,
    DataStore,
    coveragestore_from_index,
    datastore_from_index,
)
from gsrest.style import Style, style_from_index
from gsrest.support import build_route, build_url, parse_xml, read_name
from gsrest.workspace import Workspace, resolve_workspace, workspace_from_index

logger = logging.getLogger("gsrest.catalog")


def _name(named):
    """Get the name out of an object.  This varies based on the type of the input:
       * the "name" of a string is itself
       * the "name" of None is itself
       * the "name" of an object with a property named name is that property -
         as long as it's a string
       * otherwise, we raise a ValueError
    """
    if isinstance(named, string_types) or named is None:
        return named
    elif hasattr(named, 'name') and isinstance(named.name, string_types):
        return named.name
    else:
        raise ValueError(f"Can't interpret {named} as a name or a configuration object")


def _names(names):
    if names is None:
        return []
    if isinstance(names, string_types):
        return [s.strip() for s in names.split(',') if s.strip()]
    return [_name(n) for n in names]


class Catalog(object):
    """
    The GeoServer catalog: the HTTP transport every configuration object
    talks through, and the place to look up the objects themselves.

    Routes handed to the transport methods (get, post, put, delete) are
    relative to ``service_url``; absolute hrefs, such as the atom links
    GeoServer embeds in its documents, are re-based onto the configured host.
    Failed connections and timeouts raise FailedRequestError; HTTP error
    statuses are returned to the caller, which decides what they mean.
    """

    def __init__(self, service_url, username="admin", password="geoserver", validate_ssl_certificate=True,
                 access_token=None, retries=3, backoff_factor=0.9, timeout=None):
        self.service_url = service_url.strip("/")
        self.username = username
        self.password = password
        self.validate_ssl_certificate = validate_ssl_certificate
        self.access_token = access_token
        self.retries = retries
        self.backoff_factor = backoff_factor
        self.timeout = timeout
        self.setup_connection(retries=self.retries, backoff_factor=self.backoff_factor)

    @classmethod
    def from_env(cls, **kwargs):
        '''build a catalog out of the GSURL, GSUSER and GSPASSWORD env vars'''
        return cls(
            os.getenv("GSURL", "http://localhost:8080/geoserver/rest"),
            username=os.getenv("GSUSER", "admin"),
            password=os.getenv("GSPASSWORD", "geoserver"),
            **kwargs
        )

    def __getstate__(self):
        '''http connection cannot be pickled'''
        state = dict(vars(self))
        state.pop('client', None)
        state['client'] = None
        return state

    def __setstate__(self, state):
        '''restore http connection upon unpickling'''
        self.__dict__.update(state)
        self.setup_connection(retries=self.retries, backoff_factor=self.backoff_factor)

    def setup_connection(self, retries=3, backoff_factor=0.9):
        self.client = requests.session()
        self.client.verify = self.validate_ssl_certificate
        parsed_url = urlparse(self.service_url)
        # only reads are retried, a repeated POST could create twice
        retry = Retry(
            total=retries,
            status=retries,
            read=retries,
            connect=retries,
            backoff_factor=backoff_factor,
            status_forcelist=[502, 503, 504],
            allowed_methods=frozenset(['HEAD', 'GET', 'OPTIONS']),
            raise_on_status=False,
        )
        self.client.mount(f"{parsed_url.scheme}://", HTTPAdapter(max_retries=retry))

    def http_request(self, url, data=None, method='get', headers=None, params=None):
        req_method = getattr(self.client, method.lower())
        headers = dict(headers or {})

        if self.access_token:
            headers['Authorization'] = f"Bearer {self.access_token}"
            parsed_url = urlparse(url)
            query = parse_qsl(parsed_url.query.strip())
            query.append(('access_token', self.access_token))
            query = urlencode(query)
            url = f"{parsed_url.scheme}://{parsed_url.netloc}{parsed_url.path}?{query}"
        elif self.username and self.password:
            valid_uname_pw = base64.b64encode(
                f"{self.username}:{self.password}".encode("utf-8")).decode("ascii")
            headers['Authorization'] = f'Basic {valid_uname_pw}'

        try:
            return req_method(url, headers=headers, data=data, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise FailedRequestError(f'Failed to make {method.upper()} request to {url}: {e}') from e

    def _url(self, route):
        href = urlparse(route)
        if href.scheme:
            netloc = urlparse(self.service_url).netloc
            return href._replace(netloc=netloc).geturl()
        return build_url(self.service_url, route)

    def get(self, route):
        resp = self.http_request(self._url(route), headers={"Accept": "application/xml"})
        return resp.status_code, resp.content

    def post(self, route, body, content_type="application/xml"):
        return self._send('post', route, body, content_type)

    def put(self, route, body, content_type="application/xml"):
        return self._send('put', route, body, content_type)

    def _send(self, method, route, body, content_type):
        headers = {
            "Content-type": content_type,
            "Accept": "application/xml"
        }
        resp = self.http_request(self._url(route), data=body, method=method, headers=headers)
        return resp.status_code, resp.content

    def delete(self, route, params=None):
        headers = {
            "Content-type": "application/xml",
            "Accept": "application/xml"
        }
        resp = self.http_request(self._url(route), method='delete', headers=headers, params=params)
        return resp.status_code

    def get_xml(self, route):
        status, body = self.get(route)
        if status == 404:
            raise NotFoundError(f'Failed to GET {route} : {status}')
        if not 200 <= status < 300:
            raise FailedRequestError(f'Failed to GET {route} : {status}, {body!r}')
        return parse_xml(body, route)

    def get_or_none(self, route):
        '''body of route, or None when it can not be read'''
        try:
            status, body = self.get(route)
        except FailedRequestError as e:
            logger.warning(f"GET {route} failed: {e}")
            return None
        if 200 <= status < 300:
            return body
        logger.debug(f"GET {route} answered {status}")
        return None

    def get_xml_or_none(self, route):
        body = self.get_or_none(route)
        if body is None:
            return None
        try:
            return parse_xml(body, route)
        except FailedRequestError as e:
            logger.warning(str(e))
            return None

    def save(self, obj):
        """
        saves an object to the REST service, creating it when it is new
        """
        return obj.save()

    def delete_resource(self, config_object, purge=None, recurse=False):
        return config_object.delete(purge=purge, recurse=recurse)

    def _existing(self, resource):
        resource.profile
        return resource

    def get_workspaces(self, names=None):
        '''
          Returns a list of workspaces in the catalog.
          If names is specified, will only return workspaces that match.
          names can either be a comma delimited string or an array.
        '''
        dom = self.get_xml("workspaces")
        workspaces = [workspace_from_index(self, n) for n in dom.findall("workspace")]
        names = _names(names)
        if names:
            return [ws for ws in workspaces if ws.name in names]
        return workspaces

    def get_workspace(self, name):
        '''
          Returns a single workspace object.
          Will raise NotFoundError if no workspace is found.
        '''
        return self._existing(Workspace(self, name, persisted=True))

    def get_default_workspace(self):
        dom = self.get_xml("workspaces/default")
        return Workspace(self, read_name(dom, "workspaces/default"), persisted=True)

    def create_workspace(self, name):
        return Workspace(self, name)

    def get_datastores(self, workspace=None):
        ws = resolve_workspace(self, workspace)
        dom = self.get_xml(build_route(["workspaces", ws.name, "datastores"]))
        return [datastore_from_index(self, ws, n) for n in dom.findall("dataStore")]

    def get_datastore(self, name, workspace=None):
        return self._existing(DataStore(self, workspace, name, persisted=True))

    def create_datastore(self, name, workspace=None):
        return DataStore(self, workspace, name)

    def get_coverage_stores(self, workspace=None):
        ws = resolve_workspace(self, workspace)
        dom = self.get_xml(build_route(["workspaces", ws.name, "coveragestores"]))
        return [coveragestore_from_index(self, ws, n) for n in dom.findall("coverageStore")]

    def get_coverage_store(self, name, workspace=None):
        return self._existing(CoverageStore(self, workspace, name, persisted=True))

    def create_coverage_store(self, name, workspace=None):
        return CoverageStore(self, workspace, name)

    def get_coverage(self, name, coverage_store, workspace=None):
        return self._existing(Coverage(self, workspace, coverage_store, name, persisted=True))

    def create_coverage(self, name, coverage_store, workspace=None, enabled=None):
        return Coverage(self, workspace, coverage_store, name, enabled=enabled)

    def get_styles(self, workspace=None):
        if workspace is None:
            dom = self.get_xml("styles")
        else:
            workspace = resolve_workspace(self, workspace)
            dom = self.get_xml(build_route(["workspaces", workspace.name, "styles"]))
        return [style_from_index(self, workspace, n) for n in dom.findall("style")]

    def get_style(self, name, workspace=None):
        return self._existing(Style(self, name, workspace=workspace, persisted=True))

    def create_style(self, name, data, workspace=None, style_format="sld10"):
        style = Style(self, name, workspace=workspace, style_format=style_format)
        style.sld_doc = data
        return style

    def get_layers(self, workspace=None):
        if workspace is None:
            dom = self.get_xml("layers")
        else:
            workspace = resolve_workspace(self, workspace)
            dom = self.get_xml(build_route(["workspaces", workspace.name, "layers"]))
        return [layer_from_index(self, n, workspace) for n in dom.findall("layer")]

    def get_layer(self, name, workspace=None):
        '''
          Returns a single layer, by plain or qualified (``workspace:name``) name.
          Will raise NotFoundError if no layer is found.
        '''
        return self._existing(Layer(self, name, workspace=workspace, persisted=True))
