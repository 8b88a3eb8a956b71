# SPDX-License-Identifier: Apache-2.0
"""
Flight SQL SDK Tests

Suites for the wire codecs, the protocol messages, the client facade,
result materialization and the pyarrow-backed transport.
"""
