# -*- coding: utf-8 -*-

# This file is part of Y2HCount.
#
# Licensed under MIT License.

__version__ = '0.3.0'
