"""
memberlock: locked-deposit accounting engine issuing member credit.
"""

__version__ = "1.0.0"
