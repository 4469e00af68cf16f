"""
Product catalog: request models, workflows and router.
"""
