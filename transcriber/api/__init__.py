# transcriber/api/__init__.py
# ============================
# API Layer — Transcriber
#
#   POST /api/v1/transcribe   multipart upload -> merged transcript + metadata
#   GET  /api/v1/health       provider and converter status
