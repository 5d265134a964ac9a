"""
Package that contains the items pxebootstrap works with.
"""
