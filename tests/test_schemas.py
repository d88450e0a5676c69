"""
Tests for the request models in api/schemas.py.

Tests cover:
- Synthesis defaults, falsy-as-unset, explicit save=false
- Aggregated synthesis violations in gateway wording
- Voice id shape, mp3 bit rate coupling, transcript trimming
- Null pronunciation_dict_ids counts as unset
- Access-token, preset and validate-token bodies
- Mapping pydantic errors to gateway messages
"""
import pytest

from cartesia_gateway.api.schemas import (
    AccessTokenRequest,
    PresetTokenRequest,
    SynthesisRequest,
    ValidateTokenRequest,
    parse_request,
    validate_provider_body,
    validation_messages,
)
from cartesia_gateway.core.config import TTSDefaultsConfig
from cartesia_gateway.core.errors import ValidationError

VOICE_ID = "a0e99841-438c-4a64-b679-ae501e7d6091"


def minimal_body(**overrides):
    body = {"transcript": "Привет", "voice": {"mode": "id", "id": VOICE_ID}}
    body.update(overrides)
    return body


def resolve(body, defaults=None):
    return parse_request(SynthesisRequest, body).with_defaults(defaults).to_provider_body()


class TestSynthesisDefaults:
    """Defaults applied by SynthesisRequest.with_defaults()."""

    def test_minimal_body_gets_all_defaults(self):
        assert resolve(minimal_body()) == {
            "model_id": "sonic-2",
            "transcript": "Привет",
            "voice": {"mode": "id", "id": VOICE_ID},
            "output_format": {"container": "mp3", "sample_rate": 44100, "bit_rate": 128000},
            "language": "ru",
            "speed": "normal",
            "save": True,
        }

    def test_falsy_values_count_as_unset(self):
        body = resolve(minimal_body(
            model_id="", language=None, speed="",
            output_format={"container": "", "sample_rate": 0, "bit_rate": 0},
        ))
        assert body["model_id"] == "sonic-2"
        assert body["language"] == "ru"
        assert body["speed"] == "normal"
        assert body["output_format"] == {"container": "mp3", "sample_rate": 44100, "bit_rate": 128000}

    def test_empty_output_format_gets_defaults(self):
        assert resolve(minimal_body(output_format={}))["output_format"]["container"] == "mp3"

    def test_explicit_save_false_is_kept(self):
        assert resolve(minimal_body(save=False))["save"] is False

    def test_wav_gets_no_bit_rate(self):
        body = resolve(minimal_body(output_format={"container": "wav"}))
        assert body["output_format"] == {"container": "wav", "sample_rate": 44100}

    def test_explicit_bit_rate_kept(self):
        body = resolve(minimal_body(output_format={"container": "mp3", "bit_rate": 64000}))
        assert body["output_format"]["bit_rate"] == 64000

    def test_extra_output_format_keys_forwarded(self):
        body = resolve(minimal_body(output_format={"container": "raw", "encoding": "pcm_s16le"}))
        assert body["output_format"]["encoding"] == "pcm_s16le"

    def test_custom_defaults(self):
        defaults = TTSDefaultsConfig(language="en", container="wav", sample_rate=22050)
        body = resolve(minimal_body(), defaults)
        assert body["language"] == "en"
        assert body["output_format"] == {"container": "wav", "sample_rate": 22050}

    def test_transcript_trimmed(self):
        assert resolve(minimal_body(transcript="  Привет  "))["transcript"] == "Привет"

    def test_unknown_keys_dropped(self):
        assert "extra" not in resolve(minimal_body(extra="x"))

    def test_pronunciation_dict_ids_passed_through(self):
        body = resolve(minimal_body(pronunciation_dict_ids=["dict_1"]))
        assert body["pronunciation_dict_ids"] == ["dict_1"]

    def test_null_pronunciation_dict_ids_left_out(self):
        body = resolve(minimal_body(pronunciation_dict_ids=None))
        assert "pronunciation_dict_ids" not in body

    def test_resolving_twice_is_stable(self):
        once = resolve(minimal_body(language="en", save=False))
        assert resolve(once) == once
        validate_provider_body(once)


class TestSynthesisValidation:
    """Violations reported for synthesis bodies."""

    @pytest.mark.parametrize("transcript", [None, "", 42])
    def test_missing_or_non_string_transcript(self, transcript):
        with pytest.raises(ValidationError) as exc:
            parse_request(SynthesisRequest, minimal_body(transcript=transcript))
        assert exc.value.errors == ["transcript is required and must be a string"]

    def test_absent_transcript(self):
        body = minimal_body()
        del body["transcript"]
        with pytest.raises(ValidationError) as exc:
            parse_request(SynthesisRequest, body)
        assert exc.value.errors == ["transcript is required and must be a string"]

    @pytest.mark.parametrize("transcript", ["   ", "\n\t"])
    def test_whitespace_transcript(self, transcript):
        with pytest.raises(ValidationError) as exc:
            parse_request(SynthesisRequest, minimal_body(transcript=transcript))
        assert exc.value.errors == ["transcript cannot be empty"]

    @pytest.mark.parametrize("voice", [None, {}, {"mode": "id"}, {"id": VOICE_ID}, "voice"])
    def test_missing_voice_fields(self, voice):
        with pytest.raises(ValidationError, match="voice.id and voice.mode are required"):
            parse_request(SynthesisRequest, minimal_body(voice=voice))

    def test_absent_voice(self):
        body = minimal_body()
        del body["voice"]
        with pytest.raises(ValidationError, match="voice.id and voice.mode are required"):
            parse_request(SynthesisRequest, body)

    def test_wrong_voice_mode(self):
        with pytest.raises(ValidationError, match='voice.mode must be "id"'):
            parse_request(SynthesisRequest, minimal_body(voice={"mode": "embedding", "id": VOICE_ID}))

    @pytest.mark.parametrize("voice_id", [
        "not-a-uuid",
        "a0e99841-438c-0a64-b679-ae501e7d6091",   # version nibble 0
        "a0e99841-438c-4a64-c679-ae501e7d6091",   # variant nibble c
        "a0e99841438c4a64b679ae501e7d6091",
    ])
    def test_malformed_voice_id(self, voice_id):
        with pytest.raises(ValidationError, match="voice.id must be a valid UUID"):
            parse_request(SynthesisRequest, minimal_body(voice={"mode": "id", "id": voice_id}))

    def test_uppercase_voice_id_accepted(self):
        req = parse_request(SynthesisRequest, minimal_body(voice={"mode": "id", "id": VOICE_ID.upper()}))
        assert req.voice.id == VOICE_ID.upper()

    def test_unsupported_language_speed_container(self):
        with pytest.raises(ValidationError) as exc:
            parse_request(SynthesisRequest, minimal_body(
                language="xx", speed="warp", output_format={"container": "ogg"},
            ))
        errors = exc.value.errors
        assert any(e.startswith("language must be one of: en, fr") for e in errors)
        assert "speed must be one of: slow, normal, fast" in errors
        assert "output_format.container must be one of: mp3, wav, raw" in errors

    def test_output_format_must_be_object(self):
        with pytest.raises(ValidationError, match="output_format must be an object"):
            parse_request(SynthesisRequest, minimal_body(output_format="mp3"))

    def test_mp3_without_bit_rate_fails_once_defaults_applied(self):
        body = resolve(minimal_body())
        del body["output_format"]["bit_rate"]
        with pytest.raises(ValidationError, match="output_format.bit_rate is required for mp3 format"):
            validate_provider_body(body)

    def test_mp3_without_bit_rate_accepted_as_input(self):
        req = parse_request(SynthesisRequest, minimal_body(output_format={"container": "mp3"}))
        assert req.output_format.bit_rate is None

    def test_sample_rate_must_be_number(self):
        with pytest.raises(ValidationError, match="sample_rate is required and must be a number"):
            parse_request(SynthesisRequest, minimal_body(output_format={"sample_rate": "fast"}))

    def test_pronunciation_dict_ids_must_be_strings(self):
        with pytest.raises(ValidationError, match="pronunciation_dict_ids must be a list of strings"):
            parse_request(SynthesisRequest, minimal_body(pronunciation_dict_ids=[1, 2]))

    @pytest.mark.parametrize("save", ["yes", None, 1])
    def test_save_must_be_boolean(self, save):
        with pytest.raises(ValidationError, match="save must be a boolean"):
            parse_request(SynthesisRequest, minimal_body(save=save))

    def test_all_violations_reported_together(self):
        with pytest.raises(ValidationError) as exc:
            parse_request(SynthesisRequest, {"voice": {"mode": "id", "id": "bad"}, "speed": "warp"})
        assert exc.value.errors == [
            "transcript is required and must be a string",
            "voice.id must be a valid UUID",
            "speed must be one of: slow, normal, fast",
        ]
        assert exc.value.message == "; ".join(exc.value.errors)

    @pytest.mark.parametrize("body", [None, [], "text"])
    def test_body_must_be_object(self, body):
        with pytest.raises(ValidationError) as exc:
            parse_request(SynthesisRequest, body)
        assert exc.value.errors == ["Request body must be a JSON object"]


class TestAccessTokenRequest:
    def test_valid_request(self):
        req = parse_request(AccessTokenRequest, {"permissions": {"tts": True}, "expires_in": 600})
        assert req.permissions.as_flags() == {"tts": True, "stt": False}
        assert req.expires_in == 600
        assert req.to_body() == {"permissions": {"tts": True, "stt": False}, "expires_in": 600}

    def test_integer_string_expires_in(self):
        req = parse_request(AccessTokenRequest, {"permissions": {"stt": True}, "expires_in": "120"})
        assert req.expires_in == 120

    @pytest.mark.parametrize("body,message", [
        ({"expires_in": 60}, "permissions field is required in request body"),
        ({"permissions": None, "expires_in": 60}, "permissions field is required in request body"),
        ({"permissions": {"tts": True}}, "expires_in field is required in request body"),
        ({"permissions": {"tts": True}, "expires_in": None}, "expires_in field is required in request body"),
        ({"permissions": {"tts": True}, "expires_in": "soon"}, "expires_in must be a valid integer"),
        ({"permissions": {"tts": True}, "expires_in": True}, "expires_in must be a valid integer"),
        ({"permissions": "all", "expires_in": 60}, "permissions object is required"),
        ({"permissions": {"tts": "yes"}, "expires_in": 60}, "permissions.tts must be a boolean"),
        ({"permissions": {"stt": 1}, "expires_in": 60}, "permissions.stt must be a boolean"),
        ({"permissions": {"tts": True}, "expires_in": 0}, "expires_in must be a positive integer"),
        ({"permissions": {"tts": True}, "expires_in": 3601}, "expires_in cannot exceed 3600 seconds (1 hour)"),
        ({"permissions": {}, "expires_in": 60}, "At least one permission (tts or stt) must be specified"),
        ({"permissions": {"tts": False, "stt": False}, "expires_in": 60}, "At least one permission must be set to true"),
    ])
    def test_invalid_requests(self, body, message):
        with pytest.raises(ValidationError) as exc:
            parse_request(AccessTokenRequest, body)
        assert exc.value.message == message


class TestPresetTokenRequest:
    def test_absent_expires_in(self):
        req = parse_request(PresetTokenRequest, {})
        assert req.expires_in is None

    def test_explicit_value(self):
        assert parse_request(PresetTokenRequest, {"expires_in": 900}).expires_in == 900

    @pytest.mark.parametrize("value", [0, -1, 3601, "60", None, True, 1.5])
    def test_rejected_values(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_request(PresetTokenRequest, {"expires_in": value})
        assert exc.value.message == "expires_in must be a positive integer not exceeding 3600 seconds"


class TestValidateTokenRequest:
    @pytest.mark.parametrize("body", [{}, {"access_token": ""}, {"access_token": None}, {"access_token": 42}])
    def test_access_token_required(self, body):
        with pytest.raises(ValidationError) as exc:
            parse_request(ValidateTokenRequest, body)
        assert exc.value.message == "access_token is required in request body"

    def test_expiry_optional(self):
        req = parse_request(ValidateTokenRequest, {"access_token": "tok_abcdefghij"})
        assert req.expires_at is None


class TestValidationMessages:
    """validation_messages() on FastAPI-style error lists."""

    def test_body_prefix_dropped(self):
        errors = [{"type": "missing", "loc": ("body", "transcript"), "msg": "Field required"}]
        assert validation_messages(errors) == ["transcript is required and must be a string"]

    def test_missing_body(self):
        errors = [{"type": "missing", "loc": ("body",), "msg": "Field required"}]
        assert validation_messages(errors) == ["Request body must be a JSON object"]

    def test_invalid_json(self):
        errors = [{"type": "json_invalid", "loc": ("body", 7), "msg": "JSON decode error"}]
        assert validation_messages(errors) == ["Request body is not valid JSON"]

    def test_unmapped_error_keeps_location(self):
        errors = [{"type": "string_type", "loc": ("body", "model_id"), "msg": "Input should be a valid string"}]
        assert validation_messages(errors) == ["model_id: Input should be a valid string"]

    def test_duplicates_removed(self):
        err = {"type": "missing", "loc": ("body", "voice"), "msg": "Field required"}
        assert validation_messages([err, err]) == ["voice.id and voice.mode are required"]
