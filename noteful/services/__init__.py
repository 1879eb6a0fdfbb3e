# Services package init
"""
Noteful Backend — Services Layer
=================================

What:  Business rules between the routes (HTTP) and the database.

Service Inventory:
    - rules:              pure input/ownership checks (CheckResult chain)
    - ownership:          owner-scoped lookups, folder/tag reference checks
    - NoteService:        note CRUD and search
    - FolderService,
      TagService:         per-owner unique names, cascade reference removal
    - UserService:        signup and credential checks (Identity Store)

Every public method takes the session and the trusted owner id as explicit
arguments, so services can be exercised in tests without HTTP.
"""
