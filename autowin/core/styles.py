"""
autowin.core.styles - Window style bit constants.

Kept apart from the ctypes bindings so style checks work wherever a
PropertySnapshot exists, including in tests.
"""

# Window styles (GWL_STYLE)
WS_VISIBLE = 0x10000000
WS_MINIMIZE = 0x20000000
WS_MAXIMIZE = 0x01000000
WS_CAPTION = 0x00C00000
WS_CHILD = 0x40000000
WS_DISABLED = 0x08000000
WS_POPUP = 0x80000000
WS_THICKFRAME = 0x00040000
WS_OVERLAPPEDWINDOW = 0x00CF0000

# Extended window styles (GWL_EXSTYLE)
WS_EX_TOPMOST = 0x00000008
WS_EX_TOOLWINDOW = 0x00000080
WS_EX_APPWINDOW = 0x00040000
WS_EX_LAYERED = 0x00080000
WS_EX_NOACTIVATE = 0x08000000
