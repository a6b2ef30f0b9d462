# Services package.
#
# Each module exposes async functions holding the business rules and
# database access for one resource:
#
#   article_service  — article lifecycle (create / update / delete) + cached reads
#   sticker_links    — sticker resolution and article-sticker link bookkeeping
#   sticker_service  — CRUD for Sticker
#   notice_service   — CRUD for Notice
#   user_service     — CRUD for User
#
# All functions take an AsyncSession first; the request-scoped ``get_db``
# dependency owns the outer transaction and services wrap their writes in
# SAVEPOINTs.  Failures are raised as ``articlehub.exceptions`` errors.
