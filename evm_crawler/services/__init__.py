"""
Collaborators of the crawler core: data source, fetch pipeline, prompt and factories.
"""
