"""
toolgate: build-time tool registration plus a per-call authorization gate.

Startup assembly lives in ``toolgate.startup``; the sample tools in
``toolgate.sample_tools``.
"""
