from dataclasses import dataclass


@dataclass(frozen=True)
class ContentStats:
    char_count: int
    word_count: int


def content_stats(body: str) -> ContentStats:
    """Подсчет символов и слов для метаданных снимка.

    Символы считаются по длине строки (не в байтах), слова - непустые
    токены после разбиения по пробельным символам.
    """
    return ContentStats(char_count=len(body), word_count=len(body.split()))
