"""
course2cal – NTU course list (copied text) to weekly calendar events.
"""
