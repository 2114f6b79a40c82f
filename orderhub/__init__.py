"""
                Order Dispatch Hub

Order transaction and real-time dispatch backend for table-side
restaurant ordering: customers order from table-scoped menus, kitchen
staff push status changes, and every interested viewer is notified.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
