"""Sample content shown on a fresh install."""

from __future__ import annotations

from makerprofiles.models import Profile, TopCourse, now_ms
from makerprofiles.store import ProfileStore

SAMPLE_HANDLE = "sample"
SAMPLE_EDIT_SECRET = "dev-sample-secret"


def sample_profile() -> Profile:
    """Return the operator's example profile."""
    now = now_ms()
    return Profile(
        handle=SAMPLE_HANDLE,
        name="molten",
        maker_id="BH9-PJY-7VF",
        bio=(
            "こんにちは！このサイトを運営している者です。"
            "マリオメーカー2ではmoltenという名前で活動しています。"
        ),
        tags=["ギミック", "謎解き"],
        top10=[
            TopCourse(
                "[4YMM] Mortal Koopas",
                "Y2T-XLV-YDF",
                "グローバル演奏つきのボスラッシュ。演奏のクオリティもボス戦の臨場感も一級品です。",
            ),
            TopCourse(
                "Threading the Needle",
                "N9Q-LSP-LQG",
                "カロン甲羅とスターを使った新感覚のアクションコース。",
            ),
            TopCourse(
                "Spring Has Switched",
                "J7D-9L6-THG",
                "初日に投稿されたと思えないほど新ギミックを使いこなしたスタンダード。",
            ),
            TopCourse(
                "5-1 しゃくねつのピラミッド Pyro Pyramid",
                "2W3-MMM-GMF",
                "砂漠の雰囲気とアイテム配置が絶妙な、シンプルで奥深いコース。",
            ),
            TopCourse(
                "[7MMC] Wacky Wheel Waltz",
                "89N-F7W-7JG",
                "テレンを一風変わった方法で配置したスタンダードコース。",
            ),
            TopCourse(
                "Zelda TotK - Colgera Boss Theme",
                "JNP-5FY-QLG",
                "音源のチョイスとキラー砲台のドラムが光る演奏コース。",
            ),
        ],
        created_at=now,
        updated_at=now,
        edit_secret=SAMPLE_EDIT_SECRET,
    )


def seed_example(store: ProfileStore) -> bool:
    """Add the sample profile unless its handle is already in use."""
    if store.has_handle(SAMPLE_HANDLE):
        return False
    store.add(sample_profile())
    return True
