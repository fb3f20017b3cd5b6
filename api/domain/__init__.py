# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the assembly governance platform.

This package contains pure business logic functions with no side effects:
status transition tables, patch rules, option validation and vote tallying.
Persistence and orchestration live in ``services``.
"""
