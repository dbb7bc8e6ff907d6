# Routes package init
"""
Campus Portal Backend — API Routes Package
============================================

Route Inventory:
    - courses.py:        /api/courses            (location-gated course API)
    - departments.py:    /api/departments        (reads open, writes Admin)
    - notifications.py:  /api/notifications      (WhatsApp and email, Admin)
    - portal.py:         /portal/{section}/admin (admin dashboard, HTML errors)
    - diagnostics.py:    /diagnostics/headers/*  (result decorator demos)
    - health.py:         /health                 (service health check)

Routes stay THIN: the filter pipeline declared next to each route handles
gating and headers, services hold the business rules.
"""
