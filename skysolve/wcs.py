"""
Module for reading a WCS solution: the field centre and size, and the
projection of the index (catalog) stars into field pixel coordinates.
"""
import logging
import warnings
from pathlib import Path

import numpy as np
from astropy import units as u
from astropy.coordinates import SkyCoord
from astropy.io import fits
from astropy.table import Table
from astropy.utils.exceptions import AstropyWarning
from astropy.wcs import WCS

from skysolve.errors import SolutionReadError
from skysolve.io import find_column
from skysolve.paths import (
    DEC_COLUMN,
    DEFAULT_X_COLUMN,
    DEFAULT_Y_COLUMN,
    IMAGE_HEIGHT_KEY,
    IMAGE_WIDTH_KEY,
    RA_COLUMN,
)

logger = logging.getLogger(__name__)

ARCSEC_PER_ARCMIN = 60.0
ARCSEC_PER_DEG = 3600.0


class FieldSummary:
    """
    Centre and size of a solved field
    """

    def __init__(
        self,
        ra_deg: float,
        dec_deg: float,
        ra_hms: str,
        dec_dms: str,
        width: float,
        height: float,
        units: str,
    ):
        self.ra_deg = ra_deg
        self.dec_deg = dec_deg
        self.ra_hms = ra_hms
        self.dec_dms = dec_dms
        self.width = width
        self.height = height
        self.units = units

    def log_summary(self):
        """
        Logs the field centre and size

        :return: None
        """
        logger.info(
            f"Field center: (RA,Dec) = ({self.ra_deg:.4g}, {self.dec_deg:.4g}) deg."
        )
        logger.info(
            f"Field center: (RA H:M:S, Dec D:M:S) = ({self.ra_hms}, {self.dec_dms})."
        )
        logger.info(f"Field size: {self.width:g} x {self.height:g} {self.units}")


def read_wcs(wcs_path: str | Path) -> tuple[WCS, int, int]:
    """
    Reads a WCS solution header, together with the size of the solved image

    :param wcs_path: path of WCS file
    :return: WCS, image width, image height
    """
    try:
        header = fits.getheader(wcs_path, 0)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", AstropyWarning)
            wcs = WCS(header)
    except (OSError, ValueError, KeyError) as err:
        raise SolutionReadError(
            f"Failed to read WCS header from file {wcs_path}"
        ) from err

    width = header.get(IMAGE_WIDTH_KEY, header.get("NAXIS1"))
    height = header.get(IMAGE_HEIGHT_KEY, header.get("NAXIS2"))

    if width is None or height is None:
        raise SolutionReadError(
            f"WCS header in {wcs_path} has no {IMAGE_WIDTH_KEY}/{IMAGE_HEIGHT_KEY}"
        )

    if not wcs.has_celestial:
        raise SolutionReadError(f"WCS header in {wcs_path} is not celestial")

    return wcs, int(width), int(height)


def pixel_to_sky(wcs: WCS, x_pix, y_pix) -> SkyCoord:
    """
    Converts FITS (1-indexed) pixel positions to sky positions

    :param wcs: WCS
    :param x_pix: x positions
    :param y_pix: y positions
    :return: SkyCoord
    """
    ra_deg, dec_deg = wcs.all_pix2world(x_pix, y_pix, 1)
    return SkyCoord(ra=ra_deg * u.deg, dec=dec_deg * u.deg)


def get_field_size(wcs: WCS, width: int, height: int) -> tuple[float, float, str]:
    """
    Measures the angular size of a field through its middle, choosing units
    (arcseconds, arcminutes or degrees) according to the smaller side

    :param wcs: WCS
    :param width: image width in pixels
    :param height: image height in pixels
    :return: width, height, units
    """
    min_x, max_x = 0.5, width + 0.5
    min_y, max_y = 0.5, height + 0.5
    mid_x = (min_x + max_x) / 2.0
    mid_y = (min_y + max_y) / 2.0

    across = pixel_to_sky(wcs, [min_x, mid_x, max_x], [mid_y, mid_y, mid_y])
    field_w = (across[0].separation(across[1]) + across[1].separation(across[2])).arcsec

    down = pixel_to_sky(wcs, [mid_x, mid_x, mid_x], [min_y, mid_y, max_y])
    field_h = (down[0].separation(down[1]) + down[1].separation(down[2])).arcsec

    smaller = min(field_w, field_h)
    if smaller < ARCSEC_PER_ARCMIN:
        return field_w, field_h, "arcseconds"
    if smaller < ARCSEC_PER_DEG:
        return field_w / ARCSEC_PER_ARCMIN, field_h / ARCSEC_PER_ARCMIN, "arcminutes"
    return field_w / ARCSEC_PER_DEG, field_h / ARCSEC_PER_DEG, "degrees"


def read_solution_summary(wcs_path: str | Path) -> FieldSummary:
    """
    Reads a WCS solution file, and computes the field centre and size

    :param wcs_path: path of WCS file
    :return: FieldSummary
    """
    wcs, width, height = read_wcs(wcs_path)

    center = pixel_to_sky(wcs, [(width + 1) / 2.0], [(height + 1) / 2.0])[0]

    field_w, field_h, units = get_field_size(wcs, width, height)

    return FieldSummary(
        ra_deg=float(center.ra.deg),
        dec_deg=float(center.dec.deg),
        ra_hms=center.ra.to_string(unit=u.hour, sep=":", precision=3, pad=True),
        dec_dms=center.dec.to_string(
            unit=u.deg, sep=":", precision=3, pad=True, alwayssign=True
        ),
        width=float(field_w),
        height=float(field_h),
        units=units,
    )


def project_index_sources(
    wcs_path: str | Path, rdls_path: str | Path, output_path: str | Path
) -> int:
    """
    Projects the index stars in an rdls (RA/Dec list) into field pixel
    coordinates, and writes them as an xylist

    :param wcs_path: path of WCS file
    :param rdls_path: path of RA/Dec list
    :param output_path: path of output xylist
    :return: number of projected stars
    """
    wcs, _, _ = read_wcs(wcs_path)

    try:
        with fits.open(rdls_path, memmap=False) as hdul:
            tables = [Table(x.data) for x in hdul if isinstance(x, fits.BinTableHDU)]
    except (OSError, ValueError) as err:
        raise SolutionReadError(f"Failed to read rdls file {rdls_path}") from err

    if len(tables) == 0:
        raise SolutionReadError(f"No table found in rdls file {rdls_path}")

    hdus = [fits.PrimaryHDU()]
    n_stars = 0

    for table in tables:
        ra_col = find_column(table.colnames, RA_COLUMN)
        dec_col = find_column(table.colnames, DEC_COLUMN)
        if ra_col is None or dec_col is None:
            raise SolutionReadError(
                f"rdls file {rdls_path} has no {RA_COLUMN}/{DEC_COLUMN} columns"
            )

        ra_deg = np.asarray(table[ra_col], dtype=float)
        dec_deg = np.asarray(table[dec_col], dtype=float)
        x_pix, y_pix = wcs.all_world2pix(ra_deg, dec_deg, 1)

        out = Table({DEFAULT_X_COLUMN: x_pix, DEFAULT_Y_COLUMN: y_pix})
        hdus.append(fits.table_to_hdu(out))
        n_stars += len(out)

    fits.HDUList(hdus).writeto(output_path, overwrite=True)
    logger.debug(f"Projected {n_stars} index stars into {output_path}")

    return n_stars
