# accounts/__init__.py
"""
Accounts app - Authentication and multi-tenancy.

This app provides:
- Tenant: group of companies that may trade with each other
- Company: one set of books
- User: Custom user model with active_company
- CompanyMembership: User-Company relationship
- NxPermission: Fine-grained permissions
- ActorContext: Authorization context utilities

Multi-tenancy is enforced at every layer through the ActorContext pattern.
"""
