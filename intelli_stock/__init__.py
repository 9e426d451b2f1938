"""
intelli-stock 응답 캐시 계층

주식 백엔드 API의 응답과 시장 데이터를 캐시하는 라이브러리입니다.
로컬 + Redis 2계층 저장소, TTL 장부를 가진 캐시 서비스,
라우트 단위 캐시 옵션과 FastAPI 인터셉터, 애플리케이션 팩토리를 제공합니다.
"""

__version__ = "0.1.0"
