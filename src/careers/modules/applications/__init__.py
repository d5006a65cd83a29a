"""
Applications Module

Recruiter back office for applications coming in through three intake
channels (job openings, internships, spontaneous applications):
1. Merged, sorted listing across the storage partitions
2. Competence score derived from the applicant's skill ratings
3. Accept / reject decisions guarded by a conditional status update
4. Outcome emails queued after the decision is committed

API Endpoints:
- GET /admin/applications - List applications across all sources
- GET /admin/applications/stats - Dashboard counts
- GET /admin/applications/{source} - List one source
- GET /admin/applications/{source}/{id} - Application details
- PUT /admin/applications/{source}/{id}/status - Accept or reject
"""

from .admin_router import router

__all__ = ["router"]
