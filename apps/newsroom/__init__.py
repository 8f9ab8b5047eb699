"""
Newsroom app.

Stories, translations and the editorial stage-transition workflow.
"""
