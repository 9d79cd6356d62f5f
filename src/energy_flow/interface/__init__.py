"""
Interface Layer

외부 입력(설정 파일)을 코어 구조로 변환합니다.
"""
