"""Вопросы и ответы по одному документу (RAG).

Содержит:
- indexing: чанкинг документа и фоновая индексация
- embeddings / llm: клиенты OpenAI-совместимого API
- vector_store: хранилище эмбеддингов в памяти с косинусным поиском
- rag: ответ на вопрос по найденным фрагментам
- service: API для вызывающей стороны (ключ, индексация, сброс, вопросы)
"""
