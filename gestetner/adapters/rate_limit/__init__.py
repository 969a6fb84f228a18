"""Rate limiting adapters.

This package provides a small abstraction layer so both ingresses depend on
an interface, with an in-memory token bucket as the only backend for now.
"""
