"""Hospital back-office application.

This package contains the models, services, views and route
registrations for the cash book and the radiology test catalog.
"""
