"""Hall Pass package.

This package is organized by feature modules (passes, classes, freezes, ...)
with a thin Flask controller layer and service/repository layers.
"""
