"""OpenMD: Markdown notes with visibility rules and share links."""
