# -*- coding: utf-8 -*-

# This file is part of Y2HCount.
#
# Licensed under MIT License.
