"""
Services package for the job scheduler daemon.
"""
