"""
Signal sources for Global Sentinel collectors.

``type`` is the fallback threat type used when keyword detection finds nothing.
"""

RSS_SOURCES = [
    # News
    {"name": "BBC World News", "url": "http://feeds.bbci.co.uk/news/world/rss.xml", "type": "Conflict"},
    {"name": "Al Jazeera", "url": "https://www.aljazeera.com/xml/rss/all.xml", "type": "Conflict"},
    # Health
    {"name": "WHO News", "url": "https://www.who.int/rss-feeds/news-english.xml", "type": "Health"},
    # Security
    {"name": "Security Week", "url": "https://www.securityweek.com/feed/", "type": "Cyber"},
    {"name": "Krebs on Security", "url": "https://krebsonsecurity.com/feed/", "type": "Cyber"},
    # Climate
    {"name": "Climate Central", "url": "https://www.climatecentral.org/rss.xml", "type": "Climate"},
    # Economy
    {"name": "IMF News", "url": "https://www.imf.org/en/News/rss?language=eng", "type": "Economic"},
]

REDDIT_SOURCES = [
    {"subreddit": "worldnews", "type": "Conflict"},
    {"subreddit": "geopolitics", "type": "Conflict"},
    {"subreddit": "cybersecurity", "type": "Cyber"},
    {"subreddit": "climate", "type": "Climate"},
    {"subreddit": "economics", "type": "Economic"},
    {"subreddit": "artificial", "type": "AI"},
]

API_SOURCES = [
    {
        "name": "GDELT Project",
        "url": "https://api.gdeltproject.org/api/v2/doc/doc",
        "format": "gdelt",
        "type": "Conflict",
        "params": {
            "query": "conflict OR crisis OR threat",
            "mode": "artlist",
            "maxrecords": 20,
            "format": "json",
        },
    },
    {
        "name": "USGS Earthquake Data",
        "url": "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/significant_day.geojson",
        "format": "usgs",
        "type": "Climate",
    },
]

# Agency pages without feeds; selectors target each site's listing markup
HTML_SOURCES = [
    {
        "name": "WHO Emergency Updates",
        "url": "https://www.who.int/emergencies/disease-outbreak-news",
        "type": "Health",
        "selectors": {
            "title": ".sf-item-header-title a",
            "summary": ".sf-item-header-summary",
            "date": ".sf-item-header-date",
            "link": ".sf-item-header-title a",
        },
    },
    {
        "name": "CDC Emergency Preparedness",
        "url": "https://www.cdc.gov/phpr/whatsnew.htm",
        "type": "Health",
        "selectors": {
            "title": ".list-item-title a",
            "summary": ".list-item-description",
            "date": ".list-item-date",
            "link": ".list-item-title a",
        },
    },
    {
        "name": "FEMA Disasters",
        "url": "https://www.fema.gov/disasters",
        "type": "Climate",
        "regions": ["North America"],
        "selectors": {
            "title": ".views-field-title a",
            "summary": ".views-field-field-summary",
            "date": ".views-field-created",
            "link": ".views-field-title a",
        },
    },
]
