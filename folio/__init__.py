"""Folio static site generator for personal blogs.

Folio turns a folder of Markdown posts and pages, each starting with a YAML
front matter block, into a static website: chronological listings with
pagination, category and tag archives, an RSS feed and a sitemap, all
rendered through a Jinja2 theme.

The main entry point is the CLI module, which provides commands for creating
a blog, writing posts, building the site, previewing it with live reload and
deploying it to a static pages branch.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
