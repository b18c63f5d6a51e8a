#!/usr/bin/env python

'''
gsrest is a python library for manipulating a GeoServer instance via the GeoServer RESTConfig API.

The project is distributed under a MIT License .
'''

__license__ = "MIT"

import os

from gsrest.catalog import Catalog
from gsrest.util import shapefile_and_friends

cat = Catalog.from_env()

ds = cat.create_datastore("gis", "topp")
ds.data_type = "PostGIS"
# attribute values are copies, assign the updated dict back
params = ds.connection_parameters
params.update(
    host="localhost",
    port="5432",
    database="gis",
    user="postgres",
    passwd="",
    dbtype="postgis")
ds.connection_parameters = params
cat.save(ds)

ds = cat.get_datastore("gis", "topp")
print(ds.connection_parameters)

roads = cat.create_datastore("roads", "topp")
roads.upload_file(shapefile_and_friends(os.path.join("data", "roads")))
print(roads.connection_parameters["url"])
