"""Test fixtures for nexekit tests.

- node_sources: Minimal Node.js source trees and source archives

Import fixtures in your tests using:
    from tests.fixtures.node_sources import cached_source_tree
"""

__all__ = [
    "node_sources",
]
