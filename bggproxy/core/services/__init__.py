"""Application services: the entity facade and the collection assembler."""
