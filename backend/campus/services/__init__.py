# Services package init
"""
Campus Portal Backend — Services Layer
========================================

What:  Business logic between routes (HTTP) and repositories (persistence).

Service Inventory:
    - DepartmentService: department CRUD and dashboard counts
    - CourseService:     course CRUD, department membership checks
    - notifications:     WhatsApp (httpx) and email (aiosmtplib) senders
"""
