"""Unit tests for request assembly."""

import base64

import pytest

from pose_studio.assembler import GenerationRequest, ModifierDirectives, assemble
from pose_studio.errors import MalformedAsset
from pose_studio.submission import Submission
from pose_studio.types import ImageAsset, WireImage
from pose_studio.validation import validate


def _assemble_validated(submission: Submission) -> GenerationRequest:
    return assemble(validate(submission).submission)


def test_pose_only_scenario(pose_submission, jpeg_bytes):
    request = _assemble_validated(pose_submission)

    assert request.directives.pose == "superhero landing pose"
    assert request.directives.clothing == ""
    assert request.directives.background == ""
    assert request.preserve_body_shape is True
    assert request.source == WireImage(data=jpeg_bytes, media_type="image/jpeg")


def test_clothing_image_beats_text(source_asset, clothing_asset, png_bytes):
    submission = Submission(source_image=source_asset, clothing="red dress", clothing_image=clothing_asset)
    request = _assemble_validated(submission)

    assert request.directives.clothing == WireImage(data=png_bytes, media_type="image/png")


def test_image_precedence_holds_without_validation(source_asset, clothing_asset):
    submission = Submission(source_image=source_asset, background="beach", background_image=clothing_asset)
    request = assemble(submission)
    assert isinstance(request.directives.background, WireImage)


def test_assembly_is_deterministic(source_asset, clothing_asset):
    submission = Submission(
        source_image=source_asset,
        pose="sitting",
        clothing_image=clothing_asset,
        background="a sunny beach",
    )
    assert _assemble_validated(submission) == _assemble_validated(submission)


def test_request_is_detached_from_submission(pose_submission, png_bytes):
    request = assemble(pose_submission)
    pose_submission.pose = "changed"
    pose_submission.source_image = ImageAsset(payload=png_bytes, media_type="image/png")

    assert request.directives.pose == "superhero landing pose"
    assert request.source.media_type == "image/jpeg"


def test_request_is_frozen(pose_submission):
    request = assemble(pose_submission)
    with pytest.raises(AttributeError):
        request.preserve_body_shape = False  # type: ignore[misc]


def test_preserve_flag_copied(source_asset):
    request = assemble(Submission(source_image=source_asset, pose="sitting", preserve_body_shape=False))
    assert request.preserve_body_shape is False


def test_encoded_source_is_decoded(jpeg_bytes):
    encoded = base64.b64encode(jpeg_bytes).decode("ascii")
    source = ImageAsset(payload=f"data:image/jpeg;base64,{encoded}", media_type="image/jpeg")
    request = assemble(Submission(source_image=source, pose="sitting"))
    assert request.source.data == jpeg_bytes


def test_malformed_source_raises_codec_error():
    source = ImageAsset(payload="data:image/jpeg;base64,", media_type="image/jpeg")
    with pytest.raises(MalformedAsset):
        assemble(Submission(source_image=source, pose="sitting"))


def test_missing_source_is_a_programming_error():
    with pytest.raises(ValueError):
        assemble(Submission(pose="sitting"))


def test_reference_images_order(source_asset, clothing_asset, webp_bytes):
    background = ImageAsset(payload=webp_bytes, media_type="image/webp")
    request = assemble(
        Submission(source_image=source_asset, clothing_image=clothing_asset, background_image=background)
    )
    media_types = [image.media_type for image in request.reference_images()]
    assert media_types == ["image/jpeg", "image/png", "image/webp"]


def test_describe_omits_payloads(source_asset, clothing_asset):
    request = assemble(Submission(source_image=source_asset, clothing_image=clothing_asset, pose="sitting"))
    summary = request.describe()

    assert summary["pose"] == "sitting"
    assert summary["clothing"]["image"] == "image/png"
    assert summary["background"] == ""
    assert "data" not in str(summary)


def test_directive_defaults_are_empty():
    assert ModifierDirectives() == ModifierDirectives(pose="", clothing="", background="")
