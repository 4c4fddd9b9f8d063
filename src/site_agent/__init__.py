"""
Site Agent package.

The store-side service that:
- loads the zone map and camera calibration
- normalizes incoming incident records into canonical events
- runs the patrol robot simulation against live events
- serves zones, events and robots over HTTP
"""
