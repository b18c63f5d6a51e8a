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
import pickle
import unittest
from unittest import mock

import requests

from gsrest.catalog import Catalog
from gsrest.exceptions import FailedRequestError, NotFoundError
from gsrest.store import DataStore

from fakeserver import FakeCatalog, SERVICE_URL


def _response(status_code=200, content=b"<workspaces/>"):
    return mock.Mock(status_code=status_code, content=content)


class TransportTests(unittest.TestCase):

    def setUp(self):
        self.cat = Catalog(SERVICE_URL, username="admin", password="geoserver")

    def testBasicAuth(self):
        with mock.patch.object(self.cat.client, "get", return_value=_response()) as get:
            status, body = self.cat.get("workspaces")
        self.assertEqual((200, b"<workspaces/>"), (status, body))
        args, kwargs = get.call_args
        self.assertEqual(f"{SERVICE_URL}/workspaces", args[0])
        token = base64.b64encode(b"admin:geoserver").decode("ascii")
        self.assertEqual(f"Basic {token}", kwargs["headers"]["Authorization"])
        self.assertEqual("application/xml", kwargs["headers"]["Accept"])
        self.assertIsNone(kwargs["timeout"])

    def testAccessToken(self):
        cat = Catalog(SERVICE_URL, access_token="s3cr3t", timeout=5)
        with mock.patch.object(cat.client, "get", return_value=_response()) as get:
            cat.get("workspaces")
        args, kwargs = get.call_args
        self.assertEqual(f"{SERVICE_URL}/workspaces?access_token=s3cr3t", args[0])
        self.assertEqual("Bearer s3cr3t", kwargs["headers"]["Authorization"])
        self.assertEqual(5, kwargs["timeout"])

    def testPostSendsContentType(self):
        with mock.patch.object(self.cat.client, "post", return_value=_response(201, b"")) as post:
            status, _ = self.cat.post("styles?name=point", b"<sld/>", "application/vnd.ogc.sld+xml")
        self.assertEqual(201, status)
        args, kwargs = post.call_args
        self.assertEqual(f"{SERVICE_URL}/styles?name=point", args[0])
        self.assertEqual(b"<sld/>", kwargs["data"])
        self.assertEqual("application/vnd.ogc.sld+xml", kwargs["headers"]["Content-type"])

    def testDeleteParams(self):
        with mock.patch.object(self.cat.client, "delete", return_value=_response(200, b"")) as delete:
            status = self.cat.delete("styles/point", {"purge": "true"})
        self.assertEqual(200, status)
        self.assertEqual({"purge": "true"}, delete.call_args[1]["params"])

    def testConnectionErrorIsWrapped(self):
        error = requests.exceptions.ConnectionError("connection refused")
        with mock.patch.object(self.cat.client, "put", side_effect=error):
            with self.assertRaises(FailedRequestError) as ctx:
                self.cat.put("workspaces/topp", b"<workspace/>")
        self.assertIs(error, ctx.exception.__cause__)

    def testTimeoutIsWrapped(self):
        with mock.patch.object(self.cat.client, "get", side_effect=requests.exceptions.ReadTimeout("slow")):
            with self.assertRaises(FailedRequestError):
                self.cat.get("workspaces")

    def testAbsoluteHrefIsRebased(self):
        href = "http://geoserver.internal:8181/geoserver/rest/workspaces/topp/datastores/states/featuretypes.xml"
        self.assertEqual(
            "http://localhost:8080/geoserver/rest/workspaces/topp/datastores/states/featuretypes.xml",
            self.cat._url(href))

    def testGetXml(self):
        with mock.patch.object(self.cat.client, "get", return_value=_response(404, b"")):
            with self.assertRaises(NotFoundError):
                self.cat.get_xml("workspaces/nowhere")
        with mock.patch.object(self.cat.client, "get", return_value=_response(500, b"oops")):
            with self.assertRaises(FailedRequestError):
                self.cat.get_xml("workspaces")
        with mock.patch.object(self.cat.client, "get", return_value=_response(200, b"not xml")):
            with self.assertRaises(FailedRequestError):
                self.cat.get_xml("workspaces")

    def testOptionalReadsNeverRaise(self):
        with mock.patch.object(self.cat.client, "get", side_effect=requests.exceptions.ConnectionError()):
            self.assertIsNone(self.cat.get_or_none("styles/point.sld"))
        with mock.patch.object(self.cat.client, "get", return_value=_response(200, b"not xml")):
            self.assertIsNone(self.cat.get_xml_or_none("workspaces"))

    def testPickle(self):
        cat = pickle.loads(pickle.dumps(self.cat))
        self.assertEqual(SERVICE_URL, cat.service_url)
        self.assertIsInstance(cat.client, requests.Session)

    def testFromEnv(self):
        env = {"GSURL": "http://example.com/geoserver/rest/", "GSUSER": "bob", "GSPASSWORD": "pw"}
        with mock.patch.dict(os.environ, env):
            cat = Catalog.from_env(timeout=10)
        self.assertEqual("http://example.com/geoserver/rest", cat.service_url)
        self.assertEqual(("bob", "pw", 10), (cat.username, cat.password, cat.timeout))


class CatalogTests(unittest.TestCase):

    def setUp(self):
        self.cat = FakeCatalog(workspaces=("topp", "sf", "nurc"))
        self.cat.seed("workspaces", (
            "<workspaces><workspace><name>topp</name></workspace>"
            "<workspace><name>sf</name></workspace>"
            "<workspace><name>nurc</name></workspace></workspaces>"))
        self.cat.seed("workspaces/sf/datastores", (
            "<dataStores><dataStore><name>sf</name></dataStore>"
            "<dataStore><name>roads</name></dataStore></dataStores>"))
        self.cat.seed("workspaces/sf/coveragestores", (
            "<coverageStores><coverageStore><name>sfdem</name></coverageStore></coverageStores>"))
        self.cat.seed("styles", (
            "<styles><style><name>point</name></style><style><name>line</name></style></styles>"))

    def testWorkspaces(self):
        self.assertEqual(3, len(self.cat.get_workspaces()))
        self.assertEqual("topp", self.cat.get_workspaces(names="topp")[-1].name)
        self.assertEqual(2, len(self.cat.get_workspaces(names=['topp', 'sf'])))
        self.assertEqual(2, len(self.cat.get_workspaces(names='topp, sf')))
        self.assertEqual("topp", self.cat.get_workspace("topp").name)
        self.assertEqual("topp", self.cat.get_default_workspace().name)
        with self.assertRaises(NotFoundError):
            self.cat.get_workspace("blahblah-")

    def testStoreListings(self):
        stores = self.cat.get_datastores("sf")
        self.assertEqual(["sf", "roads"], [s.name for s in stores])
        self.assertTrue(all(isinstance(s, DataStore) and not s.is_new for s in stores))
        self.assertEqual(["sfdem"], [s.name for s in self.cat.get_coverage_stores("sf")])

    def testStyles(self):
        self.assertEqual(["point", "line"], [s.name for s in self.cat.get_styles()])
        self.assertTrue(all(s.workspace is None for s in self.cat.get_styles()))

    def testListedObjectsAreLazy(self):
        before = len(self.cat.requests)
        self.cat.get_styles()
        self.assertEqual(before + 1, len(self.cat.requests))

    def testGetMissing(self):
        with self.assertRaises(NotFoundError):
            self.cat.get_datastore("nothing", "topp")
        with self.assertRaises(NotFoundError):
            self.cat.get_style("nothing")
        with self.assertRaises(NotFoundError):
            self.cat.get_layer("nothing")

    def testSaveDelegates(self):
        ds = self.cat.create_datastore("roads", "topp")
        ds.connection_parameters = {"url": "file:data/roads.shp"}
        self.assertTrue(self.cat.save(ds))
        self.assertFalse(self.cat.save(ds))
        self.assertIn("workspaces/topp/datastores/roads", self.cat.documents)


if __name__ == '__main__':
    unittest.main()
