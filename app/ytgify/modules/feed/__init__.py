"""
Feeds: personalised (following + trending mix), public, trending, recent, popular,
following and per-hashtag listings, plus the trending score used by the trending job.
"""
