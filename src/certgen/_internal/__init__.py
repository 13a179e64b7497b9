"""
Modules internal to certgen. These modules should not be used by third-party
code, and their API may change without notice.
"""
