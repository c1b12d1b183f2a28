"""
Modeling layer: model specifications, resampling, workflows and tuning.
"""
