from crewai import LLM, Agent, Crew, Process, Task
from crewai.project import CrewBase, agent, crew, task
from dotenv import load_dotenv

from models import RawAiFindings
from utils.helpers import _require_env

# Load environment variables
load_dotenv()


def _build_llm() -> LLM:
    """Azure OpenAI deployment for the investigator; OPENAI_MODEL is the deployment name."""
    return LLM(
        model=f"azure/{_require_env('OPENAI_MODEL')}",
        api_key=_require_env("OPENAIAPI_KEY"),
        api_base=_require_env("OPENAI_API_BASE"),
        api_version=_require_env("OPENAI_API_VERSION"),
        temperature=0,
    )


@CrewBase
class BackgroundCheckCrew():
    """BackgroundCheckCrew: extracts structured public-record findings about a prospect tenant"""

    agents_config = 'config/agents.yaml'
    tasks_config = 'config/tasks.yaml'

    def __init__(self, llm=None):
        self.llm = llm

    @agent
    def tenant_investigator(self) -> Agent:
        return Agent(
            config=self.agents_config['tenant_investigator'],
            llm=self.llm or _build_llm(),
            verbose=False
        )

    # Task: turn web excerpts into RawAiFindings
    @task
    def extract_findings_task(self) -> Task:
        return Task(
            config=self.tasks_config['extract_findings_task'],
            output_pydantic=RawAiFindings
        )

    @crew
    def background_check_crew(self) -> Crew:
        """Creates the single-agent investigation crew"""
        return Crew(
            agents=[self.tenant_investigator()],
            tasks=[self.extract_findings_task()],
            process=Process.sequential,
            verbose=False,
        )
