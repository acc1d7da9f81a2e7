"""
devprovision — idempotent setup and launch of the ErgoDEX interface.

Brings the Node.js toolchain and the interface checkout into a verified
state, applies the fee and build-config overrides, and starts the
development server.  Every step re-derives its state from the machine,
so running the tool again is always safe.
"""

__version__ = "0.1.0"
