"""
bodycoach: posture and strength coaching engine.

Builds weekly programs from a short questionnaire, recommends the next
target for each exercise, plans multi-week phases and turns pose keypoints
into posture observations. Everything is stored locally as JSON.
"""

__version__ = "0.1.0"
