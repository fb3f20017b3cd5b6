# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains the authentication, validation, CORS and error
handling layers that sit between Flask and the assembly services.
"""
