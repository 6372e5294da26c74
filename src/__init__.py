"""
SEO Search Box Backend

Server side of the SEO Search Box dashboard:
1. Gates dashboard pages behind sign-in
2. Reads search history, saved searches and SERP rank history
3. Serves the cached Wikipedia link/Wayback analysis
4. Relays Search Console connection status from the status backend
"""

__version__ = "0.1.0"
