"""
rag_pipeline — Retrieval-Augmented Generation over uploaded documents.

Components:
  settings        — environment-driven configuration
  exceptions      — error taxonomy shared by clients and pipelines
  embedder        — text → vector (OpenAI embeddings, optional sentence-transformers)
  chroma_client   — collection management, upsert and similarity search
  llm_engine      — grounded prompt + chat completion client
  pdf_extractor   — best-effort PDF text extraction
  chunker         — optional fixed-size passage splitting
  ingestion       — upload → stored point(s)
  retriever       — question → grounded answer
  context         — once-built bundle of clients and pipelines
"""
