"""
Schemas module - Domain records and API contracts.

Records (Drive, Student, Application, ...) are what services return;
request schemas (DriveCreate, ApplyRequest, ...) are what they accept.
Both live in schemas.py.
"""
