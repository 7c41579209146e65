"""Upgrade dispatcher: capture the current version and issue the upgrade command."""

import logging
from typing import Optional

from swupgrade.exceptions import DispatchError
from swupgrade.models.settings import UpgradeSettings
from swupgrade.models.upgrade import UpgradeRequest
from swupgrade.services.device import DeviceRegisters


class UpgradeDispatcher:
    """Writes the image location and start trigger to the element."""

    def __init__(self, settings: Optional[UpgradeSettings] = None):
        self.logger = logging.getLogger("swupgrade.dispatcher")
        self.settings = settings or UpgradeSettings()

    async def dispatch(self, device: DeviceRegisters, image_location: str) -> UpgradeRequest:
        """Issue the upgrade command.

        Args:
            device: Element register access
            image_location: Image location the element should upgrade from

        Returns:
            UpgradeRequest with the version reported before the command

        Raises:
            DispatchError: If the version read or a command write fails. The
                error carries the request built so far (prior version if read).
        """
        registers = self.settings.registers
        request = UpgradeRequest(image_location=image_location)

        try:
            prior_version = await device.get(registers.version)
            request = UpgradeRequest(
                image_location=image_location,
                prior_version=None if prior_version is None else str(prior_version),
            )
            self.logger.info(
                f"Captured prior version '{request.prior_version}', "
                f"pushing image {image_location}"
            )

            await device.set(registers.image_location, image_location)
            await device.set(registers.trigger, self.settings.trigger_start)
        except Exception as e:
            self.logger.error(f"Failed to issue upgrade command: {e}")
            raise DispatchError(str(e), request=request) from e

        self.logger.info("Upgrade command issued")
        return request
