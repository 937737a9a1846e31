# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the Lifeline platform.

This package contains pure business logic functions with no side effects:
payload rules, the failure taxonomy and the contact visibility policy.
"""
