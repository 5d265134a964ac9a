"""
Static files shipped with pxebootstrap: the boot loader menu templates and the logging configuration.
"""
