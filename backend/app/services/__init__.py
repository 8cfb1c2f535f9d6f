# Services package init
"""
Checklist Manifesto Backend — Services Layer
==============================================

What:  Business logic between the method handlers and the database.
How:   Each service is a class with a module-level singleton; every method
       takes the AsyncSession explicitly so callers own the transaction.

Service Inventory:
    - AccountService:     user records, bcrypt hashing, login tokens,
                          admin bootstrap
    - SessionService:     credential verification for login and
                          accounts.login
    - DiagnosticsService: testConnection / testDatabase / getServerLogs
"""
