"""
Fichas module: patient assessment records.

Scope:
- Owner-scoped CRUD, HTML under /admin/* and JSON under /api/fichas
- Field catalogue drives forms, payload parsing and the detail page
- Derived vitals (IMC, IMC band, max heart rate) fill blanks on save
- Create/edit/delete are recorded to the audit trail (field names only)
"""
