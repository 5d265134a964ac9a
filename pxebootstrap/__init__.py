"""
pxebootstrap prepares a PXE environment from a directory of ISO images: it provides the PXELINUX and GRUB bootloaders,
extracts kernel/initrd pairs and generates the BIOS and UEFI boot menus served by a TFTP container.
"""

__version__ = "1.0.0"
