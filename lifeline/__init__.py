# SPDX-License-Identifier: Apache-2.0

"""
Lifeline API - citizen service requests with single-donor matching.
"""

__version__ = "1.0.0"
