"""Query-time retrieval: retriever strategies and the vector store facade."""
