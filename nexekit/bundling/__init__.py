"""
Application bundler adapters.
"""

from .bundler import Bundler, CommandBundler, EntryFileBundler, create_bundler

__all__ = ["Bundler", "CommandBundler", "EntryFileBundler", "create_bundler"]
