"""
Tutor knowledge retrieval and hybrid RAG service.

Turns study documents into embedded chunks, retrieves evidence for learner
questions (with a web search fallback), scores confidence and caches
generated answers and study materials.
"""
