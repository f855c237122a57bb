from __future__ import annotations

from attach.driver.automation import KeystrokeSender
from attach.driver.base import AttachDriver
from attach.editors import EditorFamily, get_profile, profile_for_executable
from core.logging import logger_service as logger
from core.settings import Settings, get_settings


def create_driver(
    editor: str | None,
    ide_path: str | None = None,
    settings: Settings | None = None,
    *,
    keystroke_sender: KeystrokeSender | None = None,
) -> AttachDriver:
    """
    Build the attach driver for an editor identity. Import concrete drivers
    locally so each one only pulls in what it needs.

    For the config-file family the executable name refines the profile, so a
    request that says ``vscode`` but points at ``Cursor.exe`` waits for Cursor.
    """
    s = settings or get_settings()
    profile = get_profile(editor)

    if profile.family is EditorFamily.CLI_ATTACH:
        logger.info(f"Attach driver selected: {profile.display_name} CLI")
        from attach.driver.rider import CliAttachDriver

        return CliAttachDriver(profile, s)

    if ide_path:
        profile = profile_for_executable(ide_path, default=profile)

    logger.info(f"Attach driver selected: {profile.display_name} (launch.json)")
    from attach.driver.vscode import ConfigFileAttachDriver

    return ConfigFileAttachDriver(profile, s, keystroke_sender=keystroke_sender)
