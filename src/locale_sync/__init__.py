# SPDX-License-Identifier: Apache-2.0
"""Keep translated key/value files in sync with a reference document."""

__version__ = "0.1.0"
