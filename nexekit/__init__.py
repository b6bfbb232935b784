"""
nexekit - compile a Node.js application into a standalone native executable.

nexekit downloads the Node.js source distribution, embeds the bundled
application into it with idempotent source patches, and runs the native
build toolchain to produce a single binary.
"""

__version__ = "0.1.0"
