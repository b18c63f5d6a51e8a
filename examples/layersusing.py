#!/usr/bin/env python

'''
gsrest is a python library for manipulating a GeoServer instance via the GeoServer RESTConfig API.

The project is distributed under a MIT License .
'''

__license__ = "MIT"

from gsrest.catalog import Catalog

style_to_check = "point"

cat = Catalog.from_env()

style = cat.get_style(style_to_check)
print([l.name for l in style.layers()])
