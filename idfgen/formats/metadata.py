"""
iMOD metadata (MET) files: a plain text description stored next to a data
file, with the same name and a ``.MET`` extension.
"""

import datetime
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from idfgen.typing import PathLike

GENERAL_HEADER = "General Information"
DATASET_HEADER = "Description Data"
ADMINISTRATION_HEADER = "Administration"

FIELD_NAMES = {
    "filename": "Filename",
    "location": "Location",
    "publication_date": "Publication Date",
    "version": "Version Number",
    "model_version": "Modelversion",
    "description": "Comment",
    "producer": "Producer",
    "type": "Type",
    "unit": "Unit",
    "resolution": "Resolution",
    "source": "Source",
    "process_description": "Process description",
    "scale": "Scale",
    "organisation": "Organisation",
    "website": "Website",
    "contact": "Contact",
    "email": "Email address",
}
SECTIONS = {
    GENERAL_HEADER: (
        "filename",
        "location",
        "publication_date",
        "version",
        "model_version",
        "description",
        "producer",
        "type",
    ),
    DATASET_HEADER: ("unit", "resolution", "source", "process_description", "scale"),
    ADMINISTRATION_HEADER: ("organisation", "website", "contact", "email"),
}
FIELD_WIDTH = 20
CONTINUATION_INDENT = " " * (FIELD_WIDTH + 4)


def met_path(path: PathLike) -> Path:
    return Path(path).with_suffix(".MET")


@dataclass
class Metadata:
    """
    Fields of a MET file. Empty fields are written as empty values.
    """

    description: str = ""
    source: str = ""
    process_description: str = ""
    filename: str = ""
    location: str = ""
    publication_date: str = field(
        default_factory=lambda: datetime.date.today().isoformat()
    )
    version: str = ""
    model_version: str = ""
    producer: str = ""
    type: str = ""
    unit: str = ""
    resolution: str = ""
    scale: str = ""
    organisation: str = ""
    website: str = ""
    contact: str = ""
    email: str = ""

    def to_text(self) -> str:
        lines = []
        for header, names in SECTIONS.items():
            lines.append(f"# {header}")
            for name in names:
                value = str(getattr(self, name)).replace("\n", "\n" + CONTINUATION_INDENT)
                lines.append(f"- {FIELD_NAMES[name]:<{FIELD_WIDTH}}: {value}")
            lines.append("")
        return "\n".join(lines)

    def write(self, path: PathLike, data_path: Optional[PathLike] = None) -> Path:
        """
        Write the MET file. With ``data_path``, the MET file is written next to
        that data file and its name is filled in.
        """
        if data_path is not None:
            self.filename = Path(data_path).name
            path = met_path(data_path)
        path = Path(path)
        with open(path, "w") as f:
            f.write(self.to_text())
        return path

    @classmethod
    def read(cls, path: PathLike) -> "Metadata":
        names = {label: name for name, label in FIELD_NAMES.items()}
        values = {}
        current = None
        with open(path) as f:
            for line in f:
                line = line.rstrip("\n")
                if line.startswith("- ") and ":" in line:
                    label, value = line[2:].split(":", 1)
                    current = names.get(label.strip())
                    if current is not None:
                        values[current] = value.strip()
                elif line.startswith(CONTINUATION_INDENT) and current is not None:
                    values[current] += "\n" + line.strip()
                else:
                    current = None
        return cls(**values)
