from typing import Optional, Union
from pydantic import BaseModel, ConfigDict

Number = Union[int, float]

class PricePoint(BaseModel):
    """
    Single daily close used for the price sparkline.
    """
    model_config = ConfigDict(frozen=True)

    date: Optional[str] = None
    close: Optional[Number] = None
