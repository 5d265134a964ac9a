"""
The actions pxebootstrap runs to prepare the TFTP root: providing the bootloaders and extracting the kernels.
"""
