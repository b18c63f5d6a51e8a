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


class ConfigurationError(Exception):
    pass


class UploadError(Exception):
    pass


class UnexpectedKindError(UploadError):
    """An operation was handed a variant it does not support, e.g. an
    upload format or style format GeoServer can not accept."""
    pass


class ConflictingDataError(Exception):
    pass


class InvalidParentError(ValueError):
    pass


class FailedRequestError(Exception):
    pass


class NotFoundError(FailedRequestError):
    pass
