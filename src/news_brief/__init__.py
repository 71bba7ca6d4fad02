"""News Brief - personalized daily news briefs."""

__version__ = "0.1.0"
