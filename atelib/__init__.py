# SPDX-License-Identifier: ISC
"""
Helper library for the OTG conformance tests.
"""
