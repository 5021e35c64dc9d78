# Routes package init
"""
Chirpline Backend: API Routes Package
=======================================

Route Inventory:
    - tweets.py:      /tweets, /tweets/{id}, /tweets/{id}/{retweets,quote_tweets,replies}
    - engagements.py: POST /likes, POST /bookmarks
    - media.py:       GET /media/{path}
    - health.py:      GET /health

Routes stay thin: they read the request, call a service, and pick the
status code. Business rules live in the services.
"""
