# Services package init
"""
Chirpline Backend: Services Layer
===================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services accept request data and a session, apply the rules, and
       return response schemas. Module-level singletons are imported by routes.

Service Inventory:
    - validation: Pure tweet rules (blank, length, media type, media size)
    - MediaService: Media file storage, lookup, and cleanup
    - TweetService: Tweet CRUD, derived collections, cascade delete
    - EngagementService: Likes and bookmarks
"""
