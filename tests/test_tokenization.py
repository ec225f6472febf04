from embedded_langid.models import PADDING_TOKEN
from embedded_langid.tokenization import Tokenizer, add_padding, tokenize_text


def test_tokenize_splits_on_whitespace_with_offsets():
    text = "Hello,  world! It's sunny."
    tokens = tokenize_text(text)

    assert [token.text for token in tokens] == ["Hello,", "world!", "It's", "sunny."]
    assert tokens[1].start_char == 8
    assert text[tokens[-1].start_char : tokens[-1].end_char] == "sunny."
    assert not any(token.is_padding or token.is_in_span for token in tokens)


def test_tokenize_splits_where_script_changes():
    tokens = tokenize_text("helloмир 東京tokyo")
    assert [token.text for token in tokens] == ["hello", "мир", "東京", "tokyo"]


def test_neutral_characters_join_the_current_run():
    tokens = tokenize_text("123abc (привет) 42")
    assert [token.text for token in tokens] == ["123abc", "(привет)", "42"]


def test_empty_and_whitespace_only_text_yield_no_tokens():
    assert tokenize_text("") == []
    assert tokenize_text(" \t\n ") == []


def test_tokens_overlapping_span_are_marked():
    tokens = Tokenizer().tokenize("one two three", span=(4, 7))
    assert [token.is_in_span for token in tokens] == [False, True, False]


def test_tokenizer_is_deterministic():
    tokenizer = Tokenizer()
    text = "Ünïcode текст and 漢字"
    assert tokenizer.tokenize(text) == tokenizer.tokenize(text)


def test_add_padding_surrounds_tokens():
    tokens = tokenize_text("a b")
    padded = add_padding(tokens, 2)

    assert len(padded) == 6
    assert padded[0] == padded[-1] == PADDING_TOKEN
    assert padded[2:4] == tokens
    assert add_padding(tokens, 0) == tokens
