"""
Config — YAML configuration loading and pre-flight validation.
"""
